"""
Permission service: runs the strategy chain and caches the outcome.

Aggregation:
- strategies run one at a time, highest priority first
- the first explicit veto (``denied=True``) ends the chain with a deny
- a result with ``granted_by`` records a grant; after it only strategies that
  may still veto are consulted
- the outcome is allowed only if a grant was recorded and nothing vetoed it;
  a chain of neutral answers is a deny
"""
from typing import List, Optional, Sequence, Union

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from lineage.core.errors import PermissionDeniedError
from lineage.features.permissions.cache import CacheKey, PermissionCache
from lineage.features.permissions.strategies.base import PermissionStrategy
from lineage.features.permissions.strategies.role_based import (
    ROLE_PERMISSIONS,
    RoleBasedStrategy,
    role_permissions,
)
from lineage.features.permissions.types import (
    Permission,
    PermissionContext,
    PermissionResult,
    ResourceType,
    Role,
    resource_type_for,
)
from lineage.utils import get_logger


log = get_logger(__name__)

NO_GRANT = PermissionResult.deny("No strategy granted permission")


class PermissionService:
    def __init__(
        self,
        strategies: Sequence[PermissionStrategy],
        cache: Optional[PermissionCache] = None,
        session: Optional[AsyncSession] = None,
    ):
        self.strategies: List[PermissionStrategy] = sorted(strategies, key=lambda s: s.priority, reverse=True)
        self.cache = cache if cache is not None else PermissionCache()
        self.session = session

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def can_access(
        self,
        user_id: str,
        tree_id: str,
        permission: Permission,
        resource_id: Optional[str] = None,
        resource_type: Optional[ResourceType] = None,
    ) -> bool:
        """
        Decide whether ``user_id`` may perform ``permission`` in ``tree_id``.

        Passing ``resource_id`` scopes the check to one resource so attribute
        rules about that resource apply; such decisions are cached separately
        from the tree-wide ones.
        """
        permission = Permission(permission)
        if resource_id is not None:
            resource_type = ResourceType(resource_type) if resource_type else resource_type_for(permission)
        key = CacheKey(user_id, tree_id, permission, resource_id, resource_type)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        result = await self.evaluate(user_id, tree_id, permission, resource_id, resource_type)
        self.cache.set(key, result.allowed, generation=generation)
        return result.allowed

    async def evaluate(
        self,
        user_id: str,
        tree_id: str,
        permission: Permission,
        resource_id: Optional[str] = None,
        resource_type: Optional[ResourceType] = None,
    ) -> PermissionResult:
        """Run the strategy chain without the cache and return the deciding result."""
        permission = Permission(permission)
        context = self._build_context(user_id, tree_id, permission, resource_id, resource_type)

        grant: Optional[PermissionResult] = None
        for strategy in self.strategies:
            if grant is not None and not strategy.may_veto:
                continue

            result = await strategy.can_access(permission, context)

            if result.denied:
                log.debug(
                    f"User {user_id} denied {permission.value} in tree {tree_id} "
                    f"by {strategy.name}: {result.reason}"
                )
                return result

            if grant is None and result.is_grant:
                grant = result

        if grant is None:
            log.debug(f"User {user_id} denied {permission.value} in tree {tree_id}: no grant")
            return NO_GRANT

        log.debug(f"User {user_id} granted {permission.value} in tree {tree_id} by {grant.granted_by}")
        return grant

    @staticmethod
    def _build_context(
        user_id: str,
        tree_id: str,
        permission: Permission,
        resource_id: Optional[str],
        resource_type: Optional[ResourceType],
    ) -> PermissionContext:
        if resource_id is None:
            return PermissionContext(user_id=user_id, tree_id=tree_id, action=permission.value)
        return PermissionContext(
            user_id=user_id,
            tree_id=tree_id,
            resource_type=ResourceType(resource_type) if resource_type else resource_type_for(permission),
            resource_id=resource_id,
            action=permission.value,
        )

    # ------------------------------------------------------------------
    # Capability listing
    # ------------------------------------------------------------------

    async def get_permissions(self, user_id: str, tree_id: str) -> List[Permission]:
        """Union of what every strategy would grant; for display, not enforcement."""
        context = PermissionContext(user_id=user_id, tree_id=tree_id)
        granted = set()
        for strategy in self.strategies:
            granted.update(await strategy.get_permissions(context))
        return [p for p in Permission if p in granted]

    def get_role_permissions(self, role: Union[Role, str]) -> List[Permission]:
        return role_permissions(role)

    async def has_minimum_role(self, user_id: str, tree_id: str, role: Union[Role, str]) -> bool:
        """True when the caller holds at least every permission of ``role``."""
        required = ROLE_PERMISSIONS[Role(role)]
        held = set(await self.get_permissions(user_id, tree_id))
        return required <= held

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def invalidate_cache(self, user_id: Optional[str] = None, tree_id: Optional[str] = None) -> None:
        """
        Purge cached decisions for a user, a tree, or both.

        Inside an open transaction the purge runs again when it commits or
        rolls back. Until then other sessions still read the old rows and may
        cache decisions from them.
        """
        self.cache.invalidate(user_id=user_id, tree_id=tree_id)
        if self.session is not None and self.session.in_transaction():
            self._purge_when_transaction_ends(user_id, tree_id)

    def _purge_when_transaction_ends(self, user_id: Optional[str], tree_id: Optional[str]) -> None:
        sync_session = self.session.sync_session
        pending = {"done": False}

        def purge(_session):
            if pending["done"]:
                return
            pending["done"] = True
            self.cache.invalidate(user_id=user_id, tree_id=tree_id)

        event.listen(sync_session, "after_commit", purge, once=True)
        event.listen(sync_session, "after_rollback", purge, once=True)

    # ------------------------------------------------------------------
    # Convenience wrappers
    # ------------------------------------------------------------------

    async def get_user_role(self, user_id: str, tree_id: str) -> Role:
        rbac = next((s for s in self.strategies if isinstance(s, RoleBasedStrategy)), None)
        role = await rbac.resolve_role(user_id, tree_id) if rbac is not None else None
        if role is None:
            raise PermissionDeniedError("User is not a member of this tree")
        return role

    async def is_owner(self, user_id: str, tree_id: str) -> bool:
        return await self.can_access(user_id, tree_id, Permission.MANAGE_COLLABORATORS)

    async def can_manage_collaborators(self, user_id: str, tree_id: str) -> bool:
        return await self.can_access(user_id, tree_id, Permission.MANAGE_COLLABORATORS)

    async def can_delete_tree(self, user_id: str, tree_id: str) -> bool:
        return await self.can_access(user_id, tree_id, Permission.DELETE_TREE)

    async def can_export_tree(self, user_id: str, tree_id: str) -> bool:
        return await self.can_access(user_id, tree_id, Permission.EXPORT_TREE)
