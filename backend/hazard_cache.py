# hazard_cache.py
# In-memory, namespace-partitioned cache with TTL, LRU eviction,
# hit/miss accounting and single-flight get_or_fetch.

import asyncio
import inspect
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from hazard_config import DEFAULT_TTLS, NamespacePolicy

logger = logging.getLogger(__name__)


def _retrieve_exception(task):
    # A fetch whose callers were all cancelled still fails quietly
    if not task.cancelled():
        task.exception()


@dataclass
class CacheEntry:
    key: str
    namespace: str
    value: Any
    inserted_at: float
    hits: int = 0


class CacheLayer:
    """
    Values are stored per namespace, so identical keys in different
    namespaces never collide. None is treated as "no value" and is never
    stored. Concurrent get_or_fetch misses for the same key share one fetch.
    """

    def __init__(self, policies=None, default_max_items=1000, clock=time.monotonic):
        if policies is None:
            policies = {
                namespace: NamespacePolicy(ttl_seconds=ttl, max_items=default_max_items)
                for namespace, ttl in DEFAULT_TTLS.items()
            }
        self._policies = dict(policies)
        self._default_max_items = default_max_items
        self._clock = clock
        self._lock = threading.Lock()
        self._store = {}
        self._in_flight = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def policy(self, namespace):
        policy = self._policies.get(namespace)
        if policy is None:
            # Unknown namespaces get no expiry but still a size bound
            policy = NamespacePolicy(ttl_seconds=float("inf"), max_items=self._default_max_items)
            self._policies[namespace] = policy
        return policy

    @staticmethod
    def _normalize_key(key):
        return str(key).strip().lower()

    def _bucket(self, namespace):
        bucket = self._store.get(namespace)
        if bucket is None:
            bucket = self._store[namespace] = OrderedDict()
        return bucket

    def _is_expired(self, entry):
        ttl = self.policy(entry.namespace).ttl_seconds
        return self._clock() - entry.inserted_at > ttl

    def get(self, key, namespace, default=None):
        """Return the cached value, or default on a miss or expired entry"""
        norm = self._normalize_key(key)
        with self._lock:
            bucket = self._bucket(namespace)
            entry = bucket.get(norm)
            if entry is None:
                self._misses += 1
                return default
            if self._is_expired(entry):
                del bucket[norm]
                self._misses += 1
                return default
            entry.hits += 1
            self._hits += 1
            bucket.move_to_end(norm)
            return entry.value

    def set(self, key, value, namespace):
        if value is None:
            return
        norm = self._normalize_key(key)
        with self._lock:
            bucket = self._bucket(namespace)
            bucket[norm] = CacheEntry(key=norm, namespace=namespace, value=value, inserted_at=self._clock())
            bucket.move_to_end(norm)
            max_items = self.policy(namespace).max_items
            while len(bucket) > max_items:
                evicted, _ = bucket.popitem(last=False)
                self._evictions += 1
                logger.debug(f"[Cache] Evicted {namespace}:{evicted}")

    def delete(self, key, namespace):
        with self._lock:
            return self._bucket(namespace).pop(self._normalize_key(key), None) is not None

    async def get_or_fetch(self, key, fetch_fn, namespace, force_refresh=False):
        """
        Return the cached value, or call fetch_fn and cache its result.
        fetch_fn is not invoked while a live entry exists unless
        force_refresh is set. A failing fetch_fn propagates and stores nothing.
        """
        if not force_refresh:
            cached = self.get(key, namespace)
            if cached is not None:
                return cached

        slot = (namespace, self._normalize_key(key))
        pending = self._in_flight.get(slot)
        if pending is None:
            # The fetch runs as its own task; cancelling any caller,
            # the one that started it included, leaves it running for the rest
            pending = asyncio.ensure_future(self._fetch_and_store(slot, key, fetch_fn, namespace))
            pending.add_done_callback(_retrieve_exception)
            self._in_flight[slot] = pending
        else:
            logger.debug(f"[Cache] Joining in-flight fetch for {namespace}:{slot[1]}")
        return await asyncio.shield(pending)

    async def _fetch_and_store(self, slot, key, fetch_fn, namespace):
        try:
            value = fetch_fn()
            if inspect.isawaitable(value):
                value = await value
            self.set(key, value, namespace)
            return value
        finally:
            self._in_flight.pop(slot, None)

    def clear(self, namespace=None):
        with self._lock:
            if namespace is None:
                self._store.clear()
            else:
                self._store.pop(namespace, None)

    def cleanup(self):
        """Drop expired entries from every namespace; returns the count removed"""
        removed = 0
        with self._lock:
            for bucket in self._store.values():
                for norm in [k for k, entry in bucket.items() if self._is_expired(entry)]:
                    del bucket[norm]
                    removed += 1
        if removed:
            logger.info(f"[Cache] Cleanup removed {removed} expired items")
        return removed

    def stats(self):
        with self._lock:
            by_type = {ns: len(bucket) for ns, bucket in self._store.items() if bucket}
            lookups = self._hits + self._misses
            return {
                "totalItems": sum(by_type.values()),
                "hits": self._hits,
                "misses": self._misses,
                "hitRate": self._hits / lookups if lookups else 0.0,
                "byType": by_type,
                "evictions": self._evictions,
                "inFlight": len(self._in_flight),
            }
