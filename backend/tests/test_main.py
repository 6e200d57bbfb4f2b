"""Tests for the application factory."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from stockservice.config import Settings
from stockservice.main import create_app, main
from stockservice.prices.messaging import STOCK_PRICES_ROUTE
from stockservice.prices.registry import SymbolStreamRegistry


class TestCreateApp:
    """Tests for create_app()."""

    def test_registry_uses_settings(self):
        """Test that the registry picks up the configured interval and eviction."""
        app = create_app(Settings(tick_interval=0.5, evict_idle_streams=True))
        registry = app.state.registry
        assert isinstance(registry, SymbolStreamRegistry)
        assert registry._interval == 0.5
        assert registry._evict_idle is True

    def test_health_reports_stream_count(self, fast_settings):
        """Test that /health counts registered symbol streams."""
        with TestClient(create_app(fast_settings)) as client:
            assert client.get("/health").json() == {"status": "ok", "symbols": 0}

            with client.websocket_connect("/rsocket") as ws:
                ws.send_json({"route": STOCK_PRICES_ROUTE, "data": "DEMO"})
                ws.receive_json()

            assert client.get("/health").json() == {"status": "ok", "symbols": 1}

    def test_shutdown_stops_streams(self, fast_settings):
        """Test that leaving the lifespan cancels every ticker."""
        app = create_app(fast_settings)
        with TestClient(app) as client:
            with client.websocket_connect("/rsocket") as ws:
                ws.send_json({"route": STOCK_PRICES_ROUTE, "data": "DEMO"})
                ws.receive_json()
            stream = app.state.registry.get("DEMO")
            assert not stream._task.done()

        assert stream._task.done()

    def test_evicting_app_drops_idle_streams(self):
        """Test that an app configured to evict forgets streams nobody watches."""
        app = create_app(Settings(tick_interval=0.05, evict_idle_streams=True))
        with TestClient(app) as client:
            with client.websocket_connect("/rsocket") as ws:
                ws.send_json({"route": STOCK_PRICES_ROUTE, "data": "DEMO"})
                ws.receive_json()
            assert client.get("/health").json()["symbols"] == 0


class TestMain:
    """Tests for the console entry point."""

    def test_main_runs_uvicorn_with_settings(self):
        """Test that main() serves the app on the configured host and port."""
        with patch.dict("os.environ", {"HOST": "127.0.0.1", "PORT": "9001"}, clear=True), patch(
            "uvicorn.run"
        ) as run:
            main()

        run.assert_called_once()
        _, kwargs = run.call_args
        assert kwargs == {"host": "127.0.0.1", "port": 9001}
