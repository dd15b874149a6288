from typing import List

from lineage.features.permissions.strategies.base import PermissionStrategy
from lineage.features.permissions.types import Permission, PermissionContext, PermissionResult
from lineage.features.trees.repositories import TreeRepository
from lineage.utils import get_logger


log = get_logger(__name__)

OWNER_ONLY_PERMISSIONS = frozenset({
    Permission.DELETE_TREE,
    Permission.MANAGE_COLLABORATORS,
})


class OwnerOnlyStrategy(PermissionStrategy):
    """
    Grants the owner-only actions to the tree owner and vetoes them for
    everyone else, whatever role they hold.
    """
    name = "owner-only"
    priority = 100
    may_veto = True

    def __init__(self, tree_repository: TreeRepository):
        self.tree_repository = tree_repository

    async def can_access(self, permission: Permission, context: PermissionContext) -> PermissionResult:
        if permission not in OWNER_ONLY_PERMISSIONS:
            return PermissionResult.neutral("Not an owner-only permission")

        tree = await self.tree_repository.find_by_id(context.tree_id)
        if tree is None:
            log.debug(f"Owner-only check on missing tree {context.tree_id}")
            return PermissionResult.veto("Tree not found")

        if tree.owner_id == context.user_id:
            return PermissionResult.grant("User is tree owner", by=self.name)

        return PermissionResult.veto("Only tree owner can perform this action")

    async def get_permissions(self, context: PermissionContext) -> List[Permission]:
        tree = await self.tree_repository.find_by_id(context.tree_id)
        if tree is None or tree.owner_id != context.user_id:
            return []
        return [p for p in Permission if p in OWNER_ONLY_PERMISSIONS]
