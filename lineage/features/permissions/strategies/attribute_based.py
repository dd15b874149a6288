"""
Attribute-based restrictions.

Rules here can only take access away. Each rule is tied to one permission;
a rule whose condition evaluates False vetoes that permission for the
current context. When nothing applies the strategy stays neutral, so a grant
still has to come from ownership or a role.

Attributes loaded per check:
    tree_is_public      tree visibility flag
    is_collaborator     caller has a collaborator record on the tree
    is_member           caller is the owner or a collaborator
    user_role           "owner" or the collaborator's permission level
    person_is_living    only for person resources: no date of death
    relationship_count  only for person resources
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from lineage.features.permissions.strategies.base import PermissionStrategy
from lineage.features.permissions.types import (
    Permission,
    PermissionContext,
    PermissionResult,
    ResourceType,
)
from lineage.features.persons.repositories import PersonRepository
from lineage.features.relationships.repositories import RelationshipRepository
from lineage.features.trees.repositories import TreeRepository
from lineage.utils import get_logger


log = get_logger(__name__)

Attributes = Dict[str, Any]


@dataclass(frozen=True)
class AttributeRule:
    permission: Permission
    condition: Callable[[PermissionContext, Attributes], bool]
    description: str


def _deceased_editable_by_privileged_roles(context: PermissionContext, attrs: Attributes) -> bool:
    if attrs.get("person_is_living") is False:
        return attrs.get("user_role") in ("owner", "admin")
    return True


def _person_without_relationships(context: PermissionContext, attrs: Attributes) -> bool:
    return not attrs.get("relationship_count")


def _living_person_hidden_in_public_tree(context: PermissionContext, attrs: Attributes) -> bool:
    if attrs.get("person_is_living") and attrs.get("tree_is_public"):
        return bool(attrs.get("is_member"))
    return True


DEFAULT_RULES = (
    AttributeRule(
        permission=Permission.EDIT_PERSON,
        condition=_deceased_editable_by_privileged_roles,
        description="Cannot edit deceased persons unless owner/admin",
    ),
    AttributeRule(
        permission=Permission.DELETE_PERSON,
        condition=_person_without_relationships,
        description="Cannot delete persons with existing relationships",
    ),
    AttributeRule(
        permission=Permission.VIEW_PERSON,
        condition=_living_person_hidden_in_public_tree,
        description="Cannot view living person details in public trees",
    ),
)


class AttributeBasedStrategy(PermissionStrategy):
    name = "abac"
    priority = 20
    may_veto = True

    def __init__(
        self,
        person_repository: PersonRepository,
        relationship_repository: RelationshipRepository,
        tree_repository: TreeRepository,
    ):
        self.person_repository = person_repository
        self.relationship_repository = relationship_repository
        self.tree_repository = tree_repository
        self.rules: List[AttributeRule] = list(DEFAULT_RULES)

    def add_rule(self, rule: AttributeRule) -> None:
        self.rules.append(rule)

    async def can_access(self, permission: Permission, context: PermissionContext) -> PermissionResult:
        applicable = [rule for rule in self.rules if rule.permission == permission]
        if not applicable:
            return PermissionResult.neutral("No attribute-based restrictions apply")

        attributes = await self.get_attributes(context)

        for rule in applicable:
            if not rule.condition(context, attributes):
                log.debug(
                    f"ABAC veto for user {context.user_id} on {permission.value} "
                    f"in tree {context.tree_id}: {rule.description}"
                )
                return PermissionResult.veto(rule.description)

        return PermissionResult.neutral("No attribute-based restrictions apply")

    async def get_permissions(self, context: PermissionContext) -> List[Permission]:
        return []

    async def get_attributes(self, context: PermissionContext) -> Attributes:
        attributes: Attributes = {
            "user_id": context.user_id,
            "tree_id": context.tree_id,
            "resource_type": context.resource_type,
        }

        tree = await self.tree_repository.find_by_id(context.tree_id)
        if tree is not None:
            collaborator = next((c for c in tree.collaborators if c.user_id == context.user_id), None)
            is_owner = tree.owner_id == context.user_id
            attributes["tree_is_public"] = tree.is_public
            attributes["is_collaborator"] = collaborator is not None
            attributes["is_member"] = is_owner or collaborator is not None
            if is_owner:
                attributes["user_role"] = "owner"
            elif collaborator is not None:
                attributes["user_role"] = collaborator.permission_level

        if context.resource_type == ResourceType.PERSON and context.resource_id:
            person = await self.person_repository.find_by_id(context.resource_id)
            if person is not None:
                attributes["person_is_living"] = person.date_of_death is None
                attributes["relationship_count"] = await self.relationship_repository.count_by_person_id(
                    context.resource_id
                )

        return attributes
