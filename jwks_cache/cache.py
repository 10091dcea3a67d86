"""Cache and refresh coordination for a single JWKS endpoint.

The cache holds one entry: the last key set fetched plus its expiry. Lookups
snapshot the entry under a shared lock and never hold it across a fetch.
Refreshes run under the exclusive lock and are collapsed: while one fetch is
in flight, every other caller that needs a refresh waits for it and shares
its outcome instead of issuing its own request.
"""
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from .errors import FetchError, KeyNotFound
from .keyset import JsonWebKey, JsonWebKeySet

logger = logging.getLogger('jwks_cache.cache')

Clock = Callable[[], int]
FetchFn = Callable[[], JsonWebKeySet]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class ReadWriteLock:
    """Many readers or one writer. A waiting writer blocks new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheEntry:
    key_set: JsonWebKeySet
    expires_at_ms: int
    # bumped by every successful refresh
    generation: int = 0

    def is_expired(self, now_ms: int) -> bool:
        # the tick the entry expires on is still usable
        return now_ms > self.expires_at_ms


class _Flight:
    """Outcome of one in-progress refresh, shared by everyone waiting on it."""

    def __init__(self):
        self._done = threading.Event()
        self._keys: JsonWebKeySet | None = None
        self._error: BaseException | None = None

    def finish(self, keys: JsonWebKeySet | None, error: BaseException | None):
        if keys is None and error is None:
            error = FetchError('Key set refresh was interrupted')
        self._keys = keys
        self._error = error
        self._done.set()

    def wait(self) -> JsonWebKeySet:
        self._done.wait()
        if self._error is not None:
            raise self._error
        return self._keys


class Cache:
    def __init__(self, time_to_live: timedelta, clock: Clock | None = None):
        self._ttl_ms = time_to_live // timedelta(milliseconds=1)
        self._clock = clock or monotonic_ms
        self._lock = ReadWriteLock()
        # starts expired so the first lookup refreshes
        self._entry = CacheEntry(JsonWebKeySet.empty(), self._clock() - 1)
        self._flight_lock = threading.Lock()
        self._flight: _Flight | None = None

    @property
    def time_to_live(self) -> timedelta:
        return timedelta(milliseconds=self._ttl_ms)

    def snapshot(self) -> CacheEntry:
        with self._lock.read():
            return self._entry

    def get_or_refresh(self, key_id: str, fetch: FetchFn) -> JsonWebKey:
        with self._lock.read():
            entry = self._entry
            expired = entry.is_expired(self._clock())
            try:
                cached = entry.key_set.get_key(key_id)
            except KeyNotFound:
                cached = None

        if cached is None:
            return self.refresh(fetch, entry.generation).get_key(key_id)
        if not expired:
            return cached

        try:
            keys = self.refresh(fetch, entry.generation)
        except FetchError as e:
            logger.debug('jwks_refresh_failed_using_stale',
                         extra={'key_id': key_id, 'error': str(e)})
            return cached
        try:
            return keys.get_key(key_id)
        except KeyNotFound:
            # rotated out of the new set; the stale key is still the best answer
            return cached

    def get_key_set(self, fetch: FetchFn) -> JsonWebKeySet:
        """Current key set, refreshed when expired. Falls back to a stale set."""
        with self._lock.read():
            entry = self._entry
            expired = entry.is_expired(self._clock())
        if not expired:
            return entry.key_set
        try:
            return self.refresh(fetch, entry.generation)
        except FetchError as e:
            if entry.generation == 0:
                raise
            logger.debug('jwks_refresh_failed_using_stale', extra={'error': str(e)})
            return entry.key_set

    def refresh(self, fetch: FetchFn, seen_generation: int | None = None) -> JsonWebKeySet:
        """Fetch and install a new key set, collapsing concurrent callers.

        ``seen_generation`` is the entry generation the caller based its
        decision on. If a refresh has completed since then the current set is
        returned without fetching again. On failure the entry is left as it
        was and the error is raised to every caller sharing the refresh.
        """
        with self._flight_lock:
            flight = self._flight
            if flight is None:
                current = self._entry
                if seen_generation is not None and current.generation != seen_generation:
                    logger.debug('jwks_refresh_skipped', extra={'generation': current.generation})
                    return current.key_set
                flight = self._flight = _Flight()
                leader = True
            else:
                leader = False

        if not leader:
            logger.debug('jwks_refresh_joined')
            return flight.wait()

        keys = None
        error = None
        try:
            with self._lock.write():
                keys = fetch()
                self._entry = CacheEntry(keys, self._clock() + self._ttl_ms,
                                         self._entry.generation + 1)
            logger.info('jwks_refreshed', extra={'key_count': len(keys)})
            return keys
        except Exception as e:
            error = e
            keys = None
            raise
        finally:
            with self._flight_lock:
                self._flight = None
            flight.finish(keys, error)
