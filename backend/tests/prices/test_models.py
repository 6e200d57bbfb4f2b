"""Tests for PriceSample dataclass."""

from datetime import datetime

import pytest

from stockservice.prices.models import PriceSample


class TestPriceSample:
    """Unit tests for the PriceSample model."""

    def test_price_sample_creation(self):
        """Test basic PriceSample creation."""
        ts = datetime(2019, 10, 17, 17, 0, 25, 506109)
        sample = PriceSample(symbol="DEMO", price=89.06318870033823, time=ts)
        assert sample.symbol == "DEMO"
        assert sample.price == 89.06318870033823
        assert sample.time == ts

    def test_default_time_is_now(self):
        """Test that time defaults to the current local time."""
        before = datetime.now()
        sample = PriceSample(symbol="DEMO", price=1.0)
        after = datetime.now()
        assert before <= sample.time <= after

    def test_to_dict(self):
        """Test serialization to dictionary."""
        ts = datetime(2019, 10, 17, 17, 0, 25, 506109)
        sample = PriceSample(symbol="DEMO", price=89.06318870033823, time=ts)

        assert sample.to_dict() == {
            "symbol": "DEMO",
            "price": 89.06318870033823,
            "time": "2019-10-17T17:00:25.506109",
        }

    def test_to_dict_time_round_trips(self):
        """The serialized time parses back to the same instant."""
        sample = PriceSample(symbol="DEMO", price=1.0)
        assert datetime.fromisoformat(sample.to_dict()["time"]) == sample.time

    def test_immutability(self):
        """Test that PriceSample is immutable."""
        sample = PriceSample(symbol="DEMO", price=50.0)

        with pytest.raises(AttributeError):
            sample.price = 60.0  # Should raise error
