"""
Permission strategies, highest priority first:

- OwnerOnlyStrategy (100): owner grant / non-owner veto for owner-only actions
- AttributeBasedStrategy (20): restriction-only attribute rules
- RoleBasedStrategy (10): grants from the static role table
"""
from lineage.features.permissions.strategies.base import PermissionStrategy
from lineage.features.permissions.strategies.owner_only import OwnerOnlyStrategy, OWNER_ONLY_PERMISSIONS
from lineage.features.permissions.strategies.role_based import (
    RoleBasedStrategy,
    ROLE_PERMISSIONS,
    role_permissions,
)
from lineage.features.permissions.strategies.attribute_based import AttributeBasedStrategy, AttributeRule

__all__ = [
    "PermissionStrategy",
    "OwnerOnlyStrategy",
    "OWNER_ONLY_PERMISSIONS",
    "RoleBasedStrategy",
    "ROLE_PERMISSIONS",
    "role_permissions",
    "AttributeBasedStrategy",
    "AttributeRule",
]
