"""Cached health state of AI providers."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass
class ProviderHealth:
    healthy: bool
    last_checked_at: float


class ProviderHealthCache:
    """
    Last known health of each provider, keyed by provider name.

    Entries are created on the first check and overwritten by every later
    one. They are never removed; an entry only goes stale.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        :param clock: Returns the current time in seconds
        """
        self.clock = clock
        self._entries: Dict[str, ProviderHealth] = {}

    def get(self, name: str) -> Optional[ProviderHealth]:
        return self._entries.get(name)

    def set(self, name: str, healthy: bool) -> ProviderHealth:
        entry = ProviderHealth(healthy=healthy, last_checked_at=self.clock())
        self._entries[name] = entry
        return entry

    def is_fresh(self, name: str, interval_ms: int) -> bool:
        """
        Tell whether the entry of a provider is younger than the interval.

        :param name: Provider name
        :param interval_ms: Maximum age in milliseconds
        """
        entry = self._entries.get(name)
        if entry is None:
            return False
        return (self.clock() - entry.last_checked_at) * 1000 < interval_ms
