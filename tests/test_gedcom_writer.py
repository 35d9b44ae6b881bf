"""
Tests for GEDCOM writer functionality
"""
from datetime import date
from unittest.mock import Mock, patch

import pytest

from family_tree.database.models import Person, Relationship
from family_tree.shared.gedcom_parser import GEDCOMParser
from family_tree.shared.gedcom_writer import GEDCOMWriter, build_gedcom_file


class TestGEDCOMWriter:
    """Test GEDCOM writer functionality"""

    @pytest.fixture
    def writer(self):
        """Create GEDCOMWriter instance"""
        return GEDCOMWriter()

    @pytest.fixture
    def family(self):
        """A couple with one child, spouse link stored in both directions"""
        people = [
            Person(id=1, first_name='John', last_name='Smith', gender='male', birth_date='1950-01-15', user_id=1),
            Person(id=2, first_name='Jane', last_name='Doe', gender='female', birth_date='1952-00-00', user_id=1),
            Person(id=3, first_name='Bobby', last_name='Smith', gender='male', birth_date='1980-03-00', user_id=1),
        ]
        relationships = [
            Relationship(person1_id=1, person2_id=2, type='spouse', user_id=1),
            Relationship(person1_id=2, person2_id=1, type='spouse', user_id=1),
            Relationship(person1_id=1, person2_id=3, type='parentOf', parent_role='father', user_id=1),
            Relationship(person1_id=2, person2_id=3, type='parentOf', parent_role='mother', user_id=1),
        ]
        return people, relationships

    def test_initialization(self, writer):
        """Test GEDCOMWriter initialization"""
        assert writer.formatter is not None
        assert writer.formatter.version == '5.5.1'
        assert writer.file_writer is not None

    @patch('family_tree.shared.gedcom_writer.GEDCOMFormatter')
    @patch('family_tree.shared.gedcom_writer.GEDCOMFileWriter')
    def test_write_gedcom_delegates(self, mock_file_writer_class, mock_formatter_class):
        """Test write_gedcom formats then writes"""
        mock_formatter = Mock()
        mock_formatter.format_gedcom.return_value = ['0 HEAD', '0 TRLR']
        mock_formatter_class.return_value = mock_formatter
        mock_file_writer = Mock()
        mock_file_writer_class.return_value = mock_file_writer

        GEDCOMWriter('7.0').write_gedcom([], [], 'out.ged', 'Owner')

        mock_formatter_class.assert_called_once_with('7.0')
        mock_formatter.format_gedcom.assert_called_once_with([], [], 'Owner')
        mock_file_writer.write_gedcom_file.assert_called_once_with(['0 HEAD', '0 TRLR'], 'out.ged')

    def test_generate_ends_with_newline(self, writer, family):
        """Test generated text is newline terminated"""
        people, relationships = family
        content = writer.generate(people, relationships, 'Owner', date(2026, 10, 17))

        assert content.startswith('0 HEAD\n')
        assert content.endswith('0 TRLR\n')

    def test_write_to_file(self, writer, family, temp_dir):
        """Test writing an export file"""
        people, relationships = family
        output = temp_dir / 'export.ged'

        writer.write_gedcom(people, relationships, str(output), 'Owner')

        content = output.read_text(encoding='utf-8')
        assert '1 NAME John /Smith/' in content
        assert '0 @F1@ FAM' in content

    def test_export_parses_back(self, family):
        """Test an export can be read by the parser with the same shape"""
        people, relationships = family
        content = build_gedcom_file(people, relationships, '5.5.1', 'Owner', date(2026, 10, 17))

        result = GEDCOMParser().parse(content)

        assert result['success'] is True
        assert result['version'] == '5.5.1'
        assert len(result['individuals']) == 3
        assert len(result['families']) == 1
        family = result['families'][0]
        assert family['husband_id'] == '@I1@'
        assert family['wife_id'] == '@I2@'
        assert family['children_ids'] == ['@I3@']
        bobby = next(ind for ind in result['individuals'] if ind['first_name'] == 'Bobby')
        assert bobby['birth_date'] == '1980-03'

    def test_invalid_version(self):
        """Test build_gedcom_file rejects unknown versions"""
        with pytest.raises(ValueError):
            build_gedcom_file([], [], '6.0')
