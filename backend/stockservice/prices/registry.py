"""Per-symbol shared price streams."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from threading import Lock

from .generator import PriceGenerator
from .models import PriceSample

logger = logging.getLogger(__name__)

_END = object()  # Queued last when a subscription ends


class SubscriptionClosed(Exception):
    """Raised by Subscription.get() once the subscription has ended."""


class Subscription:
    """One subscriber's view of a SymbolStream.

    Samples are buffered in an unbounded queue, so nothing is dropped while
    the subscriber is slow. Iterate with ``async for`` or call ``get()``.
    Closing the subscription, or stopping its stream, wakes a waiting
    consumer: iteration ends after any samples already buffered.
    """

    def __init__(self, stream: SymbolStream) -> None:
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._exhausted = False

    @property
    def symbol(self) -> str:
        return self._stream.symbol

    @property
    def pending(self) -> int:
        """Number of samples received but not yet consumed."""
        size = self._queue.qsize()
        if self._closed and not self._exhausted:
            size -= 1
        return size

    @property
    def closed(self) -> bool:
        return self._closed

    async def get(self) -> PriceSample:
        """Wait for the next sample.

        Raises SubscriptionClosed once the subscription has ended and its
        buffer is drained.
        """
        if self._exhausted:
            raise SubscriptionClosed(self.symbol)
        item = await self._queue.get()
        if item is _END:
            self._exhausted = True
            raise SubscriptionClosed(self.symbol)
        return item

    def close(self) -> None:
        """Detach from the stream. Safe to call multiple times."""
        if self._closed:
            return
        self._end()
        self._stream._detach(self)

    def _deliver(self, sample: PriceSample) -> None:
        self._queue.put_nowait(sample)

    def _end(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> PriceSample:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class SymbolStream:
    """One ticking price source for a symbol, broadcast to every subscriber.

    The ticker task is started by the first subscription and emits a sample
    every ``interval`` seconds, measured on the loop clock from that start.
    Every subscriber receives the very same PriceSample object.
    """

    def __init__(
        self,
        symbol: str,
        generator: PriceGenerator,
        interval: float = 1.0,
        on_idle: Callable[[SymbolStream], None] | None = None,
    ) -> None:
        self.symbol = symbol
        self._generator = generator
        self._interval = interval
        self._on_idle = on_idle
        self._subscribers: set[Subscription] = set()
        self._task: asyncio.Task | None = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Attach a new subscriber. Must be called from a running event loop."""
        loop = asyncio.get_running_loop()  # Raises before anything is attached
        if self._task is None:
            self._task = loop.create_task(self._run_loop(), name=f"price-stream-{self.symbol}")
            logger.info("Price stream started for %s (%.2fs interval)", self.symbol, self._interval)
        subscription = Subscription(self)
        self._subscribers.add(subscription)
        logger.debug("%s: subscriber attached (%d total)", self.symbol, len(self._subscribers))
        return subscription

    def cancel(self) -> None:
        """Cancel the ticker task without waiting for it and end every subscription."""
        if self._task and not self._task.done():
            self._task.cancel()
            logger.info("Price stream stopped for %s", self.symbol)
        subscribers, self._subscribers = self._subscribers, set()
        for subscription in subscribers:
            subscription._end()

    async def stop(self) -> None:
        """Cancel the ticker task and wait for it. Safe to call multiple times."""
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _detach(self, subscription: Subscription) -> None:
        if subscription not in self._subscribers:
            return
        self._subscribers.discard(subscription)
        logger.debug("%s: subscriber detached (%d left)", self.symbol, len(self._subscribers))
        if not self._subscribers and self._on_idle is not None:
            self._on_idle(self)

    def _publish(self, sample: PriceSample) -> None:
        for subscription in list(self._subscribers):
            subscription._deliver(sample)

    async def _run_loop(self) -> None:
        """Core loop: sleep until the next tick, generate, fan out."""
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        tick = 0
        while True:
            tick += 1
            await asyncio.sleep(max(0.0, started_at + tick * self._interval - loop.time()))
            try:
                self._publish(self._generator.generate(self.symbol))
            except Exception:
                logger.exception("Price stream tick failed for %s", self.symbol)


class SymbolStreamRegistry:
    """Process-wide map of symbol -> SymbolStream.

    ``get_or_create`` is the only way a stream comes into existence, and it
    holds the lock across lookup and insert, so concurrent first requests
    for a symbol end up sharing one stream and one generator.

    With ``evict_idle=False`` (the default) streams live until ``stop()``,
    even with no subscribers left. With ``evict_idle=True`` a stream is
    stopped and forgotten as soon as its last subscriber closes.
    """

    def __init__(
        self,
        interval: float = 1.0,
        generator_factory: Callable[[], PriceGenerator] = PriceGenerator,
        evict_idle: bool = False,
    ) -> None:
        self._interval = interval
        self._generator_factory = generator_factory
        self._evict_idle = evict_idle
        self._streams: dict[str, SymbolStream] = {}
        self._lock = Lock()

    def subscribe(self, symbol: str) -> Subscription:
        """Attach to the shared stream for ``symbol``, creating it if absent."""
        return self.get_or_create(symbol).subscribe()

    def get_or_create(self, symbol: str) -> SymbolStream:
        with self._lock:
            stream = self._streams.get(symbol)
            if stream is None:
                stream = SymbolStream(
                    symbol,
                    self._generator_factory(),
                    interval=self._interval,
                    on_idle=self._evict if self._evict_idle else None,
                )
                self._streams[symbol] = stream
                logger.info("Registered price stream for %s", symbol)
            return stream

    def get(self, symbol: str) -> SymbolStream | None:
        with self._lock:
            return self._streams.get(symbol)

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._streams)

    async def stop(self) -> None:
        """Stop every stream's ticker. The registry entries are kept."""
        with self._lock:
            streams = list(self._streams.values())
        for stream in streams:
            await stream.stop()
        logger.info("Registry stopped %d price streams", len(streams))

    def _evict(self, stream: SymbolStream) -> None:
        with self._lock:
            if self._streams.get(stream.symbol) is stream and stream.subscriber_count == 0:
                del self._streams[stream.symbol]
            else:
                return
        logger.info("Evicting idle price stream for %s", stream.symbol)
        stream.cancel()

    def __len__(self) -> int:
        with self._lock:
            return len(self._streams)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._streams
