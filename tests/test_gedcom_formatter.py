"""
Tests for GEDCOM formatter - formatting stored people and relationships as GEDCOM
"""
from datetime import date

import pytest

from family_tree.database.models import Person, Relationship
from family_tree.shared.gedcom_formatter import (
    GEDCOMFileWriter,
    GEDCOMFormatter,
    build_families,
    format_export_date,
    format_gedcom_date,
    format_gedcom_gender,
    format_gedcom_name,
)


def _person(pid, first_name, last_name='', gender='unspecified', **fields):
    return Person(id=pid, first_name=first_name, last_name=last_name, gender=gender, user_id=1, **fields)


def _rel(person1_id, person2_id, rel_type, parent_role=None):
    return Relationship(person1_id=person1_id, person2_id=person2_id, type=rel_type,
                        parent_role=parent_role, user_id=1)


class TestFormatHelpers:
    """Test the value formatting helpers"""

    def test_format_name(self):
        """Test GEDCOM name formatting"""
        assert format_gedcom_name('John', 'Smith') == 'John /Smith/'
        assert format_gedcom_name('John', '') == 'John'
        assert format_gedcom_name('', 'Smith') == '/Smith/'
        assert format_gedcom_name(None, None) == ''
        assert format_gedcom_name('  Mary Ann ', ' Jones ') == 'Mary Ann /Jones/'

    def test_format_gender(self):
        """Test sex code mapping"""
        assert format_gedcom_gender('male') == 'M'
        assert format_gedcom_gender('FEMALE') == 'F'
        assert format_gedcom_gender('other') == 'U'
        assert format_gedcom_gender('unspecified') == 'U'
        assert format_gedcom_gender(None) == 'U'
        assert format_gedcom_gender(42) == 'U'

    @pytest.mark.parametrize('stored,expected', [
        ('1950-01-15', '15 JAN 1950'),
        ('1950-01-05', '5 JAN 1950'),
        ('1950-12-00', 'DEC 1950'),
        ('1950-00-00', '1950'),
        ('1950-13-01', None),
        ('1950-01', None),
        ('15 JAN 1950', None),
        ('', None),
        (None, None),
    ])
    def test_format_date(self, stored, expected):
        """Test stored date conversion"""
        assert format_gedcom_date(stored) == expected

    def test_format_export_date(self):
        """Test header date formatting"""
        assert format_export_date(date(2026, 10, 17)) == '17 OCT 2026'
        assert format_export_date(date(2001, 1, 2)) == '2 JAN 2001'


class TestBuildFamilies:
    """Test family derivation from normalized relationships"""

    def test_couple_with_child(self):
        """Test a father, mother and child become one family"""
        people = [_person(1, 'John', gender='male'), _person(2, 'Jane', gender='female'), _person(3, 'Bob')]
        relationships = [
            _rel(1, 2, 'spouse'),
            _rel(2, 1, 'spouse'),
            _rel(1, 3, 'parentOf', 'father'),
            _rel(2, 3, 'parentOf', 'mother'),
        ]

        families = build_families(people, relationships)

        assert len(families) == 1
        assert families[0].husband_id == 1
        assert families[0].wife_id == 2
        assert families[0].children_ids == [3]

    def test_wife_stored_first(self):
        """Test genders decide husband and wife, not row direction"""
        people = [_person(1, 'Jane', gender='female'), _person(2, 'John', gender='male')]

        families = build_families(people, [_rel(1, 2, 'spouse')])

        assert families[0].husband_id == 2
        assert families[0].wife_id == 1

    def test_single_parent_family(self):
        """Test a child with one known parent"""
        people = [_person(1, 'Jane', gender='female'), _person(2, 'Bob')]

        families = build_families(people, [_rel(1, 2, 'parentOf', 'mother')])

        assert len(families) == 1
        assert families[0].husband_id is None
        assert families[0].wife_id == 1
        assert families[0].children_ids == [2]

    def test_parents_without_spouse_row(self):
        """Test a father and mother with no spouse link still share a family"""
        people = [_person(1, 'John', gender='male'), _person(2, 'Jane', gender='female'), _person(3, 'Bob')]
        relationships = [_rel(1, 3, 'parentOf', 'father'), _rel(2, 3, 'parentOf', 'mother')]

        families = build_families(people, relationships)

        assert len(families) == 1
        assert (families[0].husband_id, families[0].wife_id) == (1, 2)

    def test_person_with_two_spouses(self):
        """Test each couple gets its own family"""
        people = [_person(1, 'John', gender='male'), _person(2, 'Ann', gender='female'),
                  _person(3, 'Beth', gender='female')]

        families = build_families(people, [_rel(1, 2, 'spouse'), _rel(1, 3, 'spouse')])

        assert len(families) == 2
        assert {family.wife_id for family in families} == {2, 3}

    def test_relationships_outside_people_ignored(self):
        """Test rows pointing at people not exported are dropped"""
        people = [_person(1, 'John', gender='male')]

        families = build_families(people, [_rel(1, 99, 'spouse'), _rel(1, 98, 'parentOf', 'father')])

        assert families == []


class TestGEDCOMFormatter:
    """Test GEDCOM formatter functionality"""

    @pytest.fixture
    def formatter(self):
        """GEDCOM formatter instance"""
        return GEDCOMFormatter()

    def test_unsupported_version(self):
        """Test unknown versions are rejected"""
        with pytest.raises(ValueError, match='Unsupported GEDCOM version'):
            GEDCOMFormatter('4.0')

    def test_format_header(self, formatter):
        """Test GEDCOM header formatting"""
        header = formatter._format_header('Test Owner', date(2026, 10, 17))

        assert header == [
            '0 HEAD',
            '1 GEDC',
            '2 VERS 5.5.1',
            '1 CHAR UTF-8',
            '1 SOUR FamilyTree App',
            '1 DATE 17 OCT 2026',
            '1 SUBM @S1@',
            '0 @S1@ SUBM',
            '1 NAME Test Owner',
        ]

    def test_header_version_7(self):
        """Test the version line follows the formatter version"""
        header = GEDCOMFormatter('7.0')._format_header()
        assert '2 VERS 7.0' in header
        assert header[-1] == '1 NAME Unknown'

    def test_format_individual(self, formatter):
        """Test INDI record formatting"""
        person = _person(1, 'John', 'Smith', gender='male', birth_date='1950-01-15', birth_place='Boston',
                         death_date='2010-00-00', notes='First line\nSecond line', photo_url='http://x/p.jpg')

        lines = formatter._format_individual(person, '@I1@', ['@F1@'], ['@F2@'])

        assert lines == [
            '0 @I1@ INDI',
            '1 NAME John /Smith/',
            '1 SEX M',
            '1 BIRT',
            '2 DATE 15 JAN 1950',
            '2 PLAC Boston',
            '1 DEAT',
            '2 DATE 2010',
            '1 NOTE First line',
            '2 CONT Second line',
            '1 OBJE',
            '2 FILE http://x/p.jpg',
            '1 FAMS @F1@',
            '1 FAMC @F2@',
        ]

    def test_format_minimal_individual(self, formatter):
        """Test a person without events"""
        lines = formatter._format_individual(_person(1, 'Anna'), '@I1@')
        assert lines == ['0 @I1@ INDI', '1 NAME Anna', '1 SEX U']

    def test_invalid_date_with_place(self, formatter):
        """Test an unparseable date is dropped but the place survives"""
        assert formatter._format_event('BIRT', 'garbage', 'Paris') == ['1 BIRT', '2 PLAC Paris']
        assert formatter._format_event('BIRT', 'garbage', None) == []

    def test_format_gedcom_document(self, formatter):
        """Test a complete document with pointers"""
        people = [_person(10, 'John', 'Smith', gender='male'), _person(20, 'Jane', 'Doe', gender='female'),
                  _person(30, 'Bob', 'Smith', gender='male')]
        relationships = [
            _rel(10, 20, 'spouse'),
            _rel(20, 10, 'spouse'),
            _rel(10, 30, 'parentOf', 'father'),
            _rel(20, 30, 'parentOf', 'mother'),
        ]

        lines = formatter.format_gedcom(people, relationships, 'Owner', date(2026, 10, 17))

        assert lines[0] == '0 HEAD'
        assert lines[-1] == '0 TRLR'
        assert '0 @I1@ INDI' in lines
        assert '0 @I3@ INDI' in lines
        assert lines.count('0 @F1@ FAM') == 1
        assert '0 @F2@ FAM' not in lines

        family_index = lines.index('0 @F1@ FAM')
        assert lines[family_index + 1:family_index + 4] == ['1 HUSB @I1@', '1 WIFE @I2@', '1 CHIL @I3@']
        assert lines.count('1 FAMS @F1@') == 2
        assert lines.count('1 FAMC @F1@') == 1

    def test_empty_tree(self, formatter):
        """Test exporting nobody still gives a valid document"""
        lines = formatter.format_gedcom([], [], export_date=date(2026, 10, 17))
        assert lines[0] == '0 HEAD'
        assert lines[-1] == '0 TRLR'
        assert not any(line.endswith('INDI') for line in lines)


class TestGEDCOMFileWriter:
    """Test GEDCOM file I/O"""

    def test_write_and_read(self, temp_dir):
        """Test writing lines and reading them back"""
        output = temp_dir / 'tree.ged'

        GEDCOMFileWriter.write_gedcom_file(['0 HEAD', '0 TRLR'], str(output))

        assert output.read_text(encoding='utf-8') == '0 HEAD\n0 TRLR\n'
        assert GEDCOMFileWriter.read_gedcom_file(str(output)) == '0 HEAD\n0 TRLR\n'

    def test_read_strips_bom(self, temp_dir):
        """Test a UTF-8 byte order mark is dropped"""
        path = temp_dir / 'bom.ged'
        path.write_bytes('\ufeff0 HEAD\n'.encode('utf-8'))

        assert GEDCOMFileWriter.read_gedcom_file(str(path)) == '0 HEAD\n'
