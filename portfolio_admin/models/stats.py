"""
Counters describing how the query cache has been used during a session.
"""

from dataclasses import dataclass, field


@dataclass
class CacheStats:
    """Tracks cache hits, misses, network fetches and invalidations."""

    hits: int = 0
    misses: int = 0
    fetches: int = 0
    coalesced: int = 0
    failures: int = 0
    invalidations: int = 0
    fetches_by_key: dict[str, int] = field(default_factory=dict)

    def record_fetch(self, key: str) -> None:
        self.fetches += 1
        self.fetches_by_key[key] = self.fetches_by_key.get(key, 0) + 1

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
