"""
Value types shared by the permission strategies and the permission service.
"""
import enum
from dataclasses import dataclass
from typing import Optional


class Permission(str, enum.Enum):
    # Tree permissions
    VIEW_TREE = "view_tree"
    EDIT_TREE = "edit_tree"
    DELETE_TREE = "delete_tree"
    SHARE_TREE = "share_tree"
    EXPORT_TREE = "export_tree"

    # Person permissions
    ADD_PERSON = "add_person"
    EDIT_PERSON = "edit_person"
    DELETE_PERSON = "delete_person"
    VIEW_PERSON = "view_person"

    # Relationship permissions
    ADD_RELATIONSHIP = "add_relationship"
    EDIT_RELATIONSHIP = "edit_relationship"
    DELETE_RELATIONSHIP = "delete_relationship"

    # Media permissions
    UPLOAD_MEDIA = "upload_media"
    DELETE_MEDIA = "delete_media"

    # Collaboration permissions
    MANAGE_COLLABORATORS = "manage_collaborators"
    INVITE_COLLABORATORS = "invite_collaborators"


class Role(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"
    GUEST = "guest"


class ResourceType(str, enum.Enum):
    TREE = "tree"
    PERSON = "person"
    RELATIONSHIP = "relationship"
    MEDIA = "media"


def resource_type_for(permission: Permission) -> ResourceType:
    """The kind of resource a permission acts on."""
    suffix = permission.value.rsplit("_", 1)[-1]
    if suffix == "person":
        return ResourceType.PERSON
    if suffix == "relationship":
        return ResourceType.RELATIONSHIP
    if suffix == "media":
        return ResourceType.MEDIA
    return ResourceType.TREE


@dataclass(frozen=True)
class PermissionContext:
    """Who is asking, about which tree, and optionally about which resource in it."""
    user_id: str
    tree_id: str
    resource_type: Optional[ResourceType] = None
    resource_id: Optional[str] = None
    action: Optional[str] = None


@dataclass(frozen=True)
class PermissionResult:
    """
    One strategy's opinion on a permission.

    ``allowed`` alone is not a grant: a grant also names the strategy in
    ``granted_by``. ``denied`` is an explicit veto that ends evaluation.
    """
    allowed: bool
    reason: str
    denied: bool = False
    granted_by: Optional[str] = None

    @property
    def is_grant(self) -> bool:
        return self.allowed and self.granted_by is not None

    @classmethod
    def grant(cls, reason: str, by: str) -> "PermissionResult":
        return cls(allowed=True, reason=reason, granted_by=by)

    @classmethod
    def neutral(cls, reason: str) -> "PermissionResult":
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str) -> "PermissionResult":
        return cls(allowed=False, reason=reason)

    @classmethod
    def veto(cls, reason: str) -> "PermissionResult":
        return cls(allowed=False, reason=reason, denied=True)
