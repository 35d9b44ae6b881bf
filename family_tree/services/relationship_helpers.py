"""
Relationship normalization between the API shape and the stored shape

API callers speak ``mother`` / ``father`` / ``spouse`` (or ``parentOf`` with a
role); storage always holds ``parentOf`` + ``parent_role`` or ``spouse``.
Internally a relationship kind is one of two variants, ``ParentOf(role)`` or
``Spouse()``, with total conversions to and from both external shapes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ValidationError


class ParentRole(str, Enum):
    MOTHER = 'mother'
    FATHER = 'father'


API_RELATIONSHIP_TYPES = ('mother', 'father', 'spouse', 'parentOf')


@dataclass(frozen=True)
class ParentOf:
    """person1 is the ``role`` parent of person2"""
    role: ParentRole

    def to_storage(self) -> tuple[str, str]:
        return 'parentOf', self.role.value

    def to_api(self) -> str:
        return self.role.value


@dataclass(frozen=True)
class Spouse:
    """One direction of a marriage/partnership link"""

    def to_storage(self) -> tuple[str, None]:
        return 'spouse', None

    def to_api(self) -> str:
        return 'spouse'


RelationshipKind = ParentOf | Spouse


def relationship_kind_from_api(rel_type: str, parent_role: str | None = None) -> RelationshipKind:
    """Read an API type (already validated) into a relationship kind"""
    validate_relationship_type(rel_type, parent_role)
    if rel_type in ('mother', 'father'):
        return ParentOf(ParentRole(rel_type))
    if rel_type == 'parentOf':
        return ParentOf(ParentRole(parent_role))
    return Spouse()


def relationship_kind_from_storage(rel_type: str, parent_role: str | None) -> RelationshipKind:
    if rel_type == 'parentOf' and parent_role in ('mother', 'father'):
        return ParentOf(ParentRole(parent_role))
    if rel_type == 'spouse':
        return Spouse()
    raise ValidationError(f"Stored relationship has unknown type {rel_type!r} / role {parent_role!r}")


def normalize_relationship(person1_id: int, person2_id: int, rel_type: str,
                           parent_role: str | None = None) -> dict:
    """
    Convert an API relationship into its stored form

    ``mother``/``father`` become ``parentOf`` with that role; ``parentOf``
    keeps the given role; everything else is stored with no role.
    """
    if rel_type in ('mother', 'father'):
        return {'person1_id': person1_id, 'person2_id': person2_id, 'type': 'parentOf', 'parent_role': rel_type}
    if rel_type == 'parentOf':
        return {'person1_id': person1_id, 'person2_id': person2_id, 'type': 'parentOf', 'parent_role': parent_role}
    return {'person1_id': person1_id, 'person2_id': person2_id, 'type': rel_type, 'parent_role': None}


def _field(relationship: Any, name: str):
    if isinstance(relationship, dict):
        return relationship.get(name)
    return getattr(relationship, name, None)


def denormalize_relationship(relationship: Any) -> dict:
    """
    Convert a stored relationship (model row or dict) into the API form

    ``parentOf`` rows report their role as the type and keep ``parent_role``.
    """
    rel_type = _field(relationship, 'type')
    parent_role = _field(relationship, 'parent_role')
    created_at = _field(relationship, 'created_at')

    result = {
        'id': _field(relationship, 'id'),
        'person1_id': _field(relationship, 'person1_id'),
        'person2_id': _field(relationship, 'person2_id'),
        'type': parent_role if rel_type == 'parentOf' and parent_role else rel_type,
        'parent_role': parent_role,
    }
    if created_at is not None:
        result['created_at'] = created_at.isoformat() if hasattr(created_at, 'isoformat') else created_at
    return result


def validate_relationship_type(rel_type: Any, parent_role: Any = None) -> None:
    """Raise ValidationError unless the type (and role for parentOf) is acceptable"""
    if not rel_type or not isinstance(rel_type, str):
        raise ValidationError('type is required and must be a string')

    if rel_type not in API_RELATIONSHIP_TYPES:
        raise ValidationError('Invalid relationship type. Must be: mother, father, spouse, or parentOf')

    if rel_type == 'parentOf':
        if not parent_role or not isinstance(parent_role, str):
            raise ValidationError('parentOf type requires a parent_role parameter')
        if parent_role not in ('mother', 'father'):
            raise ValidationError('parent_role must be "mother" or "father"')


def _is_person_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_relationship_data(data: Any) -> None:
    """Validate a create-relationship payload: two distinct numeric ids and a valid type"""
    if not isinstance(data, dict):
        raise ValidationError('Relationship data must be an object')

    if not _is_person_id(data.get('person1_id')):
        raise ValidationError('person1_id is required and must be a number')
    if not _is_person_id(data.get('person2_id')):
        raise ValidationError('person2_id is required and must be a number')

    if data['person1_id'] == data['person2_id']:
        raise ValidationError('A person cannot be related to themselves')

    validate_relationship_type(data.get('type'), data.get('parent_role'))


def parse_id(value: Any) -> int | None:
    """Positive integer from a path or query value, else None"""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed >= 1 else None
