"""Data models for streamed prices."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PriceSample:
    """Immutable price for a single symbol at one tick."""

    symbol: str
    price: float
    time: datetime = field(default_factory=datetime.now)  # Local, naive

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "time": self.time.isoformat(),
        }
