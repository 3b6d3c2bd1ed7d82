"""Deduplicated, size-bounded cache of instance identity lookups."""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable, Dict, Optional

from ..core.logging import get_logger
from ..core.periodic import PeriodicTask
from ..utils.metrics import MetricsRegistry
from .client import ServiceIdentity

LOGGER = get_logger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_FLUSH_INTERVAL_SECONDS = 180.0

Resolver = Callable[[str], ServiceIdentity]


class IdentityCache:
    """LRU cache in front of an identity resolver.

    Concurrent misses for the same identity share a single resolver call and
    all observe its result or its exception. The whole store is swapped for
    an empty one every ``flush_interval`` seconds, which bounds staleness.
    Results resolved across a flush are returned but not cached.
    """

    def __init__(
        self,
        resolver: Resolver,
        *,
        capacity: int = DEFAULT_CAPACITY,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.flush_interval = flush_interval
        self._resolver = resolver
        self._lock = threading.Lock()
        self._store: OrderedDict[str, ServiceIdentity] = OrderedDict()
        self._inflight: Dict[str, Future] = {}
        self._generation = 0
        self._flusher = PeriodicTask("identity-cache-flush", flush_interval, self.flush)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def start(self) -> None:
        self._flusher.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._flusher.stop(timeout)

    def flush(self) -> None:
        with self._lock:
            dropped = len(self._store)
            self._store = OrderedDict()
            self._generation += 1
        LOGGER.debug("Identity cache flushed (%d entries dropped)", dropped)

    def peek(self, identity: str) -> Optional[ServiceIdentity]:
        with self._lock:
            return self._store.get(identity)

    def resolve(self, identity: str) -> ServiceIdentity:
        with self._lock:
            cached = self._store.get(identity)
            if cached is not None:
                self._store.move_to_end(identity)
                MetricsRegistry.record_identity_lookup("hit")
                return cached
            future = self._inflight.get(identity)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[identity] = future
            generation = self._generation

        if not leader:
            return future.result()

        MetricsRegistry.record_identity_lookup("miss")
        try:
            result = self._resolver(identity)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(identity, None)
            future.set_exception(exc)
            MetricsRegistry.record_identity_lookup("error")
            raise

        with self._lock:
            self._inflight.pop(identity, None)
            if generation == self._generation:
                self._put(identity, result)
        future.set_result(result)
        return result

    def _put(self, identity: str, value: ServiceIdentity) -> None:
        self._store[identity] = value
        self._store.move_to_end(identity)
        if len(self._store) > self.capacity:
            self._store.popitem(last=False)
