"""Random price generator."""

from __future__ import annotations

from datetime import datetime

import numpy as np

from .models import PriceSample

MAX_PRICE = 100.0


class PriceGenerator:
    """Draws a price uniformly from [0, 100) on every call.

    Each instance owns its own numpy Generator, so streams for different
    symbols never contend on a shared random source.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)

    def generate(self, symbol: str) -> PriceSample:
        """Produce one sample for ``symbol`` stamped with the current time."""
        price = float(self._rng.uniform(0.0, MAX_PRICE))
        return PriceSample(symbol=symbol, price=price, time=datetime.now())
