"""Price streaming subsystem.

Public API:
    PriceSample           - Immutable price sample dataclass
    PriceGenerator        - Uniform random price source
    SymbolStreamRegistry  - One shared, ticking stream per symbol
    Subscription          - A subscriber's handle on a symbol stream
    SubscriptionClosed    - Raised by Subscription.get() after it has ended
    create_stream_router  - FastAPI router factory for the SSE endpoint
    create_messaging_router - FastAPI router factory for the message socket
"""

from .generator import PriceGenerator
from .messaging import create_messaging_router
from .models import PriceSample
from .registry import Subscription, SubscriptionClosed, SymbolStream, SymbolStreamRegistry
from .stream import create_stream_router

__all__ = [
    "PriceSample",
    "PriceGenerator",
    "SymbolStream",
    "SymbolStreamRegistry",
    "Subscription",
    "SubscriptionClosed",
    "create_stream_router",
    "create_messaging_router",
]
