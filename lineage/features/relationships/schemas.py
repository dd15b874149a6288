"""
Pydantic schemas for relationships.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from lineage.features.persons.schemas import PersonResponse
from lineage.features.relationships.models import StoredRelationshipType
from lineage.features.relationships.normalization import RelationshipType


class RelationshipCreate(BaseModel):
    """
    Link a person to someone already in the tree.

    ``type`` says what ``new_person_id`` is to ``existing_person_id``,
    e.g. ``step-child``, ``mother`` or ``partner``.
    """
    existing_person_id: str = Field(..., description="Person already in the tree")
    new_person_id: str = Field(..., description="Person being linked")
    type: RelationshipType
    notes: Optional[str] = Field(None, max_length=2000)


class RelationshipUpdate(BaseModel):
    """
    Change a stored link. ``type`` uses the stored vocabulary; turning a
    spouse or sibling link into a parent link makes ``from_person_id`` the
    parent.
    """
    type: Optional[StoredRelationshipType] = None
    notes: Optional[str] = Field(None, max_length=2000)


class RelationshipResponse(BaseModel):
    id: str
    tree_id: str
    from_person_id: str
    to_person_id: str
    type: StoredRelationshipType
    notes: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FamilyMembersResponse(BaseModel):
    """Immediate relatives of a person the caller may view."""
    parents: List[PersonResponse] = []
    children: List[PersonResponse] = []
    spouses: List[PersonResponse] = []
    siblings: List[PersonResponse] = []
