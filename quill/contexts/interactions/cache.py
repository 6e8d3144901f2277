"""
Interaction Correlation Cache

In-memory memory of what the bot has posted, so follow-up actions work without a
database:

- inbound message id -> id of the bot's response to it (to replace a stale response
  when the same message is rendered again)
- response id -> WidenEntry (owner + original source), only for responses whose
  render overflowed the normal width

Nothing is persisted. Entries expire after a TTL and each map is capped in size,
oldest insertion evicted first; an evicted entry behaves like one lost on restart.
Every operation holds the lock only for the dict access itself, never across an await.
"""

import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar

from dotenv import load_dotenv

load_dotenv()

INTERACTION_CACHE_TTL_S = float(os.getenv("INTERACTION_CACHE_TTL_S", "86400"))
INTERACTION_CACHE_MAX_ENTRIES = int(os.getenv("INTERACTION_CACHE_MAX_ENTRIES", "10000"))

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class WidenEntry:
    """
    What is needed to re-render a response wider.

    Attributes:
        owner_id: User who submitted the original source
        source: Original LaTeX source
    """

    owner_id: int
    source: str


class ExpiringMap(Generic[K, V]):
    """
    Thread-safe mapping with insertion-time TTL and a size cap.

    Args:
        ttl_s: Seconds an entry lives after insertion (None = forever)
        max_entries: Maximum number of live entries (None = unbounded)
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl_s: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[K, Tuple[float, V]]" = OrderedDict()

    def _expired(self, inserted_at: float, now: float) -> bool:
        return self.ttl_s is not None and now - inserted_at >= self.ttl_s

    def put(self, key: K, value: V) -> None:
        """Insert or replace; a replaced key counts as freshly inserted."""
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            inserted_at, value = item
            if self._expired(inserted_at, self._clock()):
                del self._entries[key]
                return None
            return value

    def pop(self, key: K) -> Optional[V]:
        with self._lock:
            item = self._entries.pop(key, None)
            if item is None or self._expired(item[0], self._clock()):
                return None
            return item[1]

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        if self.ttl_s is None:
            return 0
        with self._lock:
            now = self._clock()
            # Insertion order is expiry order
            dropped = 0
            while self._entries:
                key, (inserted_at, _) = next(iter(self._entries.items()))
                if not self._expired(inserted_at, now):
                    break
                del self._entries[key]
                dropped += 1
            return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None


class InteractionCache:
    """
    Process-wide correlation state, owned by the top-level service and injected
    into every handler that needs it.

    Example:
        cache = InteractionCache()
        cache.register_response(inbound_id=10, response_id=11)
        cache.prior_response_for(10)   # 11
        cache.register_widen(11, owner_id=42, source=r"\\[ \\sum_i x_i \\]")
        cache.widen_info_for(11)       # WidenEntry(owner_id=42, source=...)
    """

    def __init__(
        self,
        ttl_s: Optional[float] = INTERACTION_CACHE_TTL_S,
        max_entries: Optional[int] = INTERACTION_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._responses: ExpiringMap[int, int] = ExpiringMap(ttl_s, max_entries, clock)
        self._widen: ExpiringMap[int, WidenEntry] = ExpiringMap(ttl_s, max_entries, clock)

    # Correlation entries: inbound message -> bot response

    def register_response(self, inbound_id: int, response_id: int) -> None:
        """Record the live response for an inbound message, replacing any earlier one."""
        self._responses.put(inbound_id, response_id)

    def prior_response_for(self, inbound_id: int) -> Optional[int]:
        return self._responses.get(inbound_id)

    # Widen entries: bot response -> owner and source

    def register_widen(self, response_id: int, owner_id: int, source: str) -> None:
        self._widen.put(response_id, WidenEntry(owner_id=owner_id, source=source))

    def widen_info_for(self, response_id: int) -> Optional[WidenEntry]:
        return self._widen.get(response_id)

    def discard_widen(self, response_id: int) -> Optional[WidenEntry]:
        """Forget a widen entry once its response is deleted or widened."""
        return self._widen.pop(response_id)

    def purge_expired(self) -> int:
        return self._responses.purge_expired() + self._widen.purge_expired()

    def __len__(self) -> int:
        return len(self._responses) + len(self._widen)
