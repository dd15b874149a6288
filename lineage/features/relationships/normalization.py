"""
Relationship type normalization.

Users describe a link from the point of view of the person they are adding
("the new person is the existing person's step-child"). Storage only knows
the canonical types and always records parent-child links from the
parent's side, so every input is rewritten onto a from/to/type triple:

- child, step-child, adoptive-child    -> parent, existing -> new
- parent, step-parent, adoptive-parent -> parent, new -> existing
- father, mother                       -> father/mother, new -> existing
- partner                              -> spouse, existing -> new
- spouse, sibling                      -> unchanged, existing -> new

A plain ``parent`` is refined to father or mother from the parent's gender
when the link is stored; see ``RelationshipService``.
"""
import enum
from dataclasses import dataclass

from lineage.features.relationships.models import StoredRelationshipType


class RelationshipType(str, enum.Enum):
    PARENT = "parent"
    CHILD = "child"
    FATHER = "father"
    MOTHER = "mother"
    SPOUSE = "spouse"
    SIBLING = "sibling"
    STEP_PARENT = "step-parent"
    STEP_CHILD = "step-child"
    ADOPTIVE_PARENT = "adoptive-parent"
    ADOPTIVE_CHILD = "adoptive-child"
    PARTNER = "partner"


PARENT_CHILD_TYPES = frozenset({
    RelationshipType.PARENT,
    RelationshipType.CHILD,
    RelationshipType.FATHER,
    RelationshipType.MOTHER,
    RelationshipType.STEP_PARENT,
    RelationshipType.STEP_CHILD,
    RelationshipType.ADOPTIVE_PARENT,
    RelationshipType.ADOPTIVE_CHILD,
})

CHILD_TYPES = frozenset({
    RelationshipType.CHILD,
    RelationshipType.STEP_CHILD,
    RelationshipType.ADOPTIVE_CHILD,
})

GENDERED_PARENT_TYPES = {
    RelationshipType.FATHER: StoredRelationshipType.FATHER,
    RelationshipType.MOTHER: StoredRelationshipType.MOTHER,
}


@dataclass(frozen=True)
class NormalizedRelationship:
    from_person_id: str
    to_person_id: str
    type: StoredRelationshipType


def is_parent_child_type(relationship_type: RelationshipType) -> bool:
    return RelationshipType(relationship_type) in PARENT_CHILD_TYPES


def normalize_relationship_type(
    relationship_type: RelationshipType,
    existing_person_id: str,
    new_person_id: str,
) -> NormalizedRelationship:
    """
    Map a user-facing relationship type onto the stored triple.

    Args:
        relationship_type: What the new person is to the existing person
        existing_person_id: Person already in the tree
        new_person_id: Person being linked

    Returns:
        NormalizedRelationship ready to persist
    """
    relationship_type = RelationshipType(relationship_type)

    if relationship_type in PARENT_CHILD_TYPES:
        if relationship_type in CHILD_TYPES:
            return NormalizedRelationship(
                from_person_id=existing_person_id,
                to_person_id=new_person_id,
                type=StoredRelationshipType.PARENT,
            )
        return NormalizedRelationship(
            from_person_id=new_person_id,
            to_person_id=existing_person_id,
            type=GENDERED_PARENT_TYPES.get(relationship_type, StoredRelationshipType.PARENT),
        )

    if relationship_type == RelationshipType.PARTNER:
        stored = StoredRelationshipType.SPOUSE
    else:
        stored = StoredRelationshipType(relationship_type.value)

    return NormalizedRelationship(
        from_person_id=existing_person_id,
        to_person_id=new_person_id,
        type=stored,
    )
