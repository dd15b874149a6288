"""
In-memory cache of permission decisions.

Entries never expire. Any code path that changes tree ownership, the
collaborator list, tree visibility, or person/relationship data read by the
attribute rules must call ``invalidate`` for the affected user and/or tree
once that change is committed.

Every invalidation bumps ``generation``. A decision computed before the bump
was read from data that may since have changed, so ``set`` drops it when the
caller passes the generation it started from.
"""
from typing import Dict, NamedTuple, Optional

from lineage.features.permissions.types import Permission, ResourceType
from lineage.utils import get_logger


log = get_logger(__name__)


class CacheKey(NamedTuple):
    user_id: str
    tree_id: str
    permission: Permission
    resource_id: Optional[str] = None
    resource_type: Optional[ResourceType] = None


class PermissionCache:
    def __init__(self):
        self._entries: Dict[CacheKey, bool] = {}
        self.generation = 0

    def get(self, key: CacheKey) -> Optional[bool]:
        return self._entries.get(key)

    def set(self, key: CacheKey, allowed: bool, generation: Optional[int] = None) -> bool:
        """
        Store a decision.

        Returns:
            False when ``generation`` is stale and the decision was dropped
        """
        if generation is not None and generation != self.generation:
            log.debug(f"Dropped decision computed before invalidation: {key}")
            return False
        self._entries[key] = allowed
        return True

    def invalidate(self, user_id: Optional[str] = None, tree_id: Optional[str] = None) -> int:
        """
        Drop cached decisions.

        No arguments clears everything; ``user_id`` and ``tree_id`` narrow the
        purge to that user, that tree, or (both given) that user on that tree.

        Returns:
            Number of entries removed
        """
        self.generation += 1

        if user_id is None and tree_id is None:
            removed = len(self._entries)
            self._entries.clear()
            log.info(f"Permission cache cleared ({removed} entries)")
            return removed

        stale = [
            key for key in self._entries
            if (user_id is None or key.user_id == user_id)
            and (tree_id is None or key.tree_id == tree_id)
        ]
        for key in stale:
            del self._entries[key]

        log.info(f"Permission cache invalidated user={user_id} tree={tree_id} removed={len(stale)}")
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
