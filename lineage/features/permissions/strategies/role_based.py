"""
Role-based access control.

A caller's role in a tree is derived on every check, never stored:

1. the tree owner is OWNER
2. a collaborator gets the role matching their permission level
3. anyone else gets GUEST on a public tree
4. otherwise there is no role, and nothing is granted
"""
from typing import Dict, FrozenSet, List, Optional, Union

from lineage.features.permissions.strategies.base import PermissionStrategy
from lineage.features.permissions.types import Permission, PermissionContext, PermissionResult, Role
from lineage.features.trees.repositories import TreeRepository


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.OWNER: frozenset(Permission),
    Role.ADMIN: frozenset(Permission) - {Permission.DELETE_TREE, Permission.MANAGE_COLLABORATORS},
    Role.EDITOR: frozenset({
        Permission.VIEW_TREE,
        Permission.EDIT_TREE,
        Permission.EXPORT_TREE,
        Permission.ADD_PERSON,
        Permission.EDIT_PERSON,
        Permission.VIEW_PERSON,
        Permission.ADD_RELATIONSHIP,
        Permission.EDIT_RELATIONSHIP,
        Permission.UPLOAD_MEDIA,
    }),
    Role.VIEWER: frozenset({
        Permission.VIEW_TREE,
        Permission.VIEW_PERSON,
        Permission.EXPORT_TREE,
    }),
    Role.GUEST: frozenset({
        Permission.VIEW_TREE,
        Permission.VIEW_PERSON,
    }),
}

COLLABORATOR_LEVEL_ROLES: Dict[str, Role] = {
    "admin": Role.ADMIN,
    "editor": Role.EDITOR,
    "viewer": Role.VIEWER,
}


def role_permissions(role: Union[Role, str]) -> List[Permission]:
    """Static permission list for a role, in enum order; empty for unknown names."""
    try:
        role = Role(role)
    except ValueError:
        return []
    granted = ROLE_PERMISSIONS[role]
    return [p for p in Permission if p in granted]


class RoleBasedStrategy(PermissionStrategy):
    name = "rbac"
    priority = 10
    may_veto = False

    def __init__(self, tree_repository: TreeRepository):
        self.tree_repository = tree_repository

    async def resolve_role(self, user_id: str, tree_id: str) -> Optional[Role]:
        tree = await self.tree_repository.find_by_id(tree_id)
        if tree is None:
            return None

        if tree.owner_id == user_id:
            return Role.OWNER

        for collaborator in tree.collaborators:
            if collaborator.user_id == user_id:
                # Levels outside the known set degrade to read-only access
                return COLLABORATOR_LEVEL_ROLES.get(collaborator.permission_level, Role.VIEWER)

        if tree.is_public:
            return Role.GUEST

        return None

    async def can_access(self, permission: Permission, context: PermissionContext) -> PermissionResult:
        role = await self.resolve_role(context.user_id, context.tree_id)
        if role is None:
            return PermissionResult.deny("User has no role in this tree")

        if permission in ROLE_PERMISSIONS[role]:
            return PermissionResult.grant(f"Permission granted by role: {role.value}", by=self.name)

        return PermissionResult.deny(f"Role {role.value} does not have permission: {permission.value}")

    async def get_permissions(self, context: PermissionContext) -> List[Permission]:
        role = await self.resolve_role(context.user_id, context.tree_id)
        if role is None:
            return []
        return role_permissions(role)
