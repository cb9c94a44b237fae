"""Published state of the tree cache."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from urltree.tree.models import TreeNode


@dataclass(frozen=True, slots=True)
class CacheSnapshot:
    """A built tree together with the moment it was built.

    Snapshots are replaced as a whole and never modified after publication.
    """

    tree: TreeNode
    built_at: int  # epoch milliseconds

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.built_at

    def is_fresh(self, now_ms: int, ttl_ms: int) -> bool:
        """Return True while the snapshot is younger than ``ttl_ms``."""
        return self.age_ms(now_ms) < ttl_ms

    def formatted_built_at(self) -> str:
        return datetime.fromtimestamp(self.built_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
