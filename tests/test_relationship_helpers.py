"""
Tests for relationship normalization between API and storage shapes
"""
from datetime import datetime

import pytest

from family_tree.database.models import Relationship
from family_tree.services.exceptions import ValidationError
from family_tree.services.relationship_helpers import (
    ParentOf,
    ParentRole,
    Spouse,
    denormalize_relationship,
    normalize_relationship,
    parse_id,
    relationship_kind_from_api,
    relationship_kind_from_storage,
    validate_relationship_data,
    validate_relationship_type,
)


class TestNormalization:
    """Test API to storage conversion and back"""

    def test_mother_and_father(self):
        """Test parent types become parentOf with a role"""
        assert normalize_relationship(1, 2, 'mother') == {
            'person1_id': 1, 'person2_id': 2, 'type': 'parentOf', 'parent_role': 'mother'
        }
        assert normalize_relationship(1, 2, 'father')['parent_role'] == 'father'

    def test_parent_of_keeps_role(self):
        """Test parentOf with an explicit role"""
        assert normalize_relationship(3, 4, 'parentOf', 'father') == {
            'person1_id': 3, 'person2_id': 4, 'type': 'parentOf', 'parent_role': 'father'
        }

    def test_spouse_has_no_role(self):
        """Test spouse rows never carry a role"""
        assert normalize_relationship(1, 2, 'spouse', 'mother')['parent_role'] is None

    def test_denormalize_model(self):
        """Test a stored row reports its role as the type"""
        created = datetime(2026, 1, 2, 3, 4, 5)
        rel = Relationship(id=7, person1_id=1, person2_id=2, type='parentOf', parent_role='mother',
                           user_id=1, created_at=created)

        assert denormalize_relationship(rel) == {
            'id': 7,
            'person1_id': 1,
            'person2_id': 2,
            'type': 'mother',
            'parent_role': 'mother',
            'created_at': created.isoformat(),
        }

    def test_denormalize_dict_spouse(self):
        """Test dict rows and spouse type"""
        result = denormalize_relationship({'id': 1, 'person1_id': 5, 'person2_id': 6, 'type': 'spouse'})
        assert result['type'] == 'spouse'
        assert result['parent_role'] is None
        assert 'created_at' not in result

    @pytest.mark.parametrize('rel_type,role', [('mother', None), ('father', None), ('spouse', None),
                                               ('parentOf', 'mother'), ('parentOf', 'father')])
    def test_api_type_survives_storage(self, rel_type, role):
        """Test normalize then denormalize gives the same API type"""
        stored = normalize_relationship(1, 2, rel_type, role)
        api_type = denormalize_relationship(stored)['type']
        expected = role if rel_type == 'parentOf' else rel_type
        assert api_type == expected


class TestRelationshipKind:
    """Test the two relationship variants"""

    def test_from_api(self):
        """Test API types map to variants"""
        assert relationship_kind_from_api('mother') == ParentOf(ParentRole.MOTHER)
        assert relationship_kind_from_api('parentOf', 'father') == ParentOf(ParentRole.FATHER)
        assert relationship_kind_from_api('spouse') == Spouse()

    def test_from_storage(self):
        """Test stored rows map to variants"""
        kind = relationship_kind_from_storage('parentOf', 'father')
        assert kind.to_storage() == ('parentOf', 'father')
        assert kind.to_api() == 'father'
        assert relationship_kind_from_storage('spouse', None).to_storage() == ('spouse', None)

    def test_unknown_storage_row(self):
        """Test a row without a usable role"""
        with pytest.raises(ValidationError):
            relationship_kind_from_storage('parentOf', None)


class TestValidation:
    """Test payload validation"""

    def test_valid_payload(self):
        """Test a complete payload passes"""
        validate_relationship_data({'person1_id': 1, 'person2_id': 2, 'type': 'mother'})
        validate_relationship_data({'person1_id': 1, 'person2_id': 2, 'type': 'parentOf', 'parent_role': 'father'})

    @pytest.mark.parametrize('data,message', [
        ([], 'Relationship data must be an object'),
        ({'person2_id': 2, 'type': 'spouse'}, 'person1_id is required and must be a number'),
        ({'person1_id': '1', 'person2_id': 2, 'type': 'spouse'}, 'person1_id is required and must be a number'),
        ({'person1_id': True, 'person2_id': 2, 'type': 'spouse'}, 'person1_id is required and must be a number'),
        ({'person1_id': 1, 'person2_id': 0, 'type': 'spouse'}, 'person2_id is required and must be a number'),
        ({'person1_id': 3, 'person2_id': 3, 'type': 'spouse'}, 'A person cannot be related to themselves'),
        ({'person1_id': 1, 'person2_id': 2}, 'type is required and must be a string'),
        ({'person1_id': 1, 'person2_id': 2, 'type': 'sibling'},
         'Invalid relationship type. Must be: mother, father, spouse, or parentOf'),
        ({'person1_id': 1, 'person2_id': 2, 'type': 'parentOf'}, 'parentOf type requires a parent_role parameter'),
        ({'person1_id': 1, 'person2_id': 2, 'type': 'parentOf', 'parent_role': 'aunt'},
         'parent_role must be "mother" or "father"'),
    ])
    def test_invalid_payloads(self, data, message):
        """Test each rejection message"""
        with pytest.raises(ValidationError) as exc_info:
            validate_relationship_data(data)
        assert exc_info.value.message == message

    def test_validate_type_only(self):
        """Test type validation without ids"""
        validate_relationship_type('spouse')
        with pytest.raises(ValidationError):
            validate_relationship_type(5)

    @pytest.mark.parametrize('value,expected', [
        ('12', 12), (' 3 ', 3), (7, 7), ('0', None), ('-1', None), ('abc', None), (None, None),
    ])
    def test_parse_id(self, value, expected):
        """Test path and query id parsing"""
        assert parse_id(value) == expected
