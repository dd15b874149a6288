"""
Pydantic schemas for trees and collaborators.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from lineage.features.trees.models import CollaboratorLevel


# ============================================================================
# Tree Schemas
# ============================================================================

class TreeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Tree name")
    description: Optional[str] = Field(None, max_length=2000)
    is_public: bool = Field(False, description="Public trees are visible to every signed-in user")


class TreeCreate(TreeBase):
    pass


class TreeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    is_public: Optional[bool] = None


class CollaboratorResponse(BaseModel):
    user_id: str
    permission_level: CollaboratorLevel
    added_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TreeResponse(TreeBase):
    id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TreeWithCollaborators(TreeResponse):
    collaborators: List[CollaboratorResponse] = []

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Collaborator Schemas
# ============================================================================

class CollaboratorCreate(BaseModel):
    user_id: str = Field(..., description="User to add")
    permission_level: CollaboratorLevel = Field(CollaboratorLevel.VIEWER, description="admin, editor or viewer")


class CollaboratorUpdate(BaseModel):
    permission_level: CollaboratorLevel
