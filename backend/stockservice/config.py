"""Service settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    tick_interval: float = 1.0  # Seconds between samples per symbol
    evict_idle_streams: bool = False
    log_level: str = "INFO"


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    - HOST, PORT, TICK_INTERVAL, EVICT_IDLE_STREAMS, LOG_LEVEL
    - Empty or whitespace-only values fall back to the defaults.

    Raises ValueError naming the variable if a number cannot be parsed.
    """
    env = os.environ if environ is None else environ
    defaults = Settings()

    def read(name: str) -> str | None:
        value = env.get(name, "").strip()
        return value or None

    def read_number(name: str, cast, default):
        raw = read(name)
        if raw is None:
            return default
        try:
            return cast(raw)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {raw!r}") from None

    evict = read("EVICT_IDLE_STREAMS")
    return Settings(
        host=read("HOST") or defaults.host,
        port=read_number("PORT", int, defaults.port),
        tick_interval=read_number("TICK_INTERVAL", float, defaults.tick_interval),
        evict_idle_streams=evict.lower() in _TRUE_VALUES if evict else defaults.evict_idle_streams,
        log_level=(read("LOG_LEVEL") or defaults.log_level).upper(),
    )
