"""Cache statistics snapshot."""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache counters."""

    entries: int
    total_size_bytes: int
    hit_count: int
    miss_count: int
    max_size_bytes: int
    max_entries: int

    @property
    def hit_rate(self) -> float:
        """Hits over lookups; 0.0 before the first lookup."""
        total = self.hit_count + self.miss_count
        return self.hit_count / total if total else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = self.hit_rate
        return data
