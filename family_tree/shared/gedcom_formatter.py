"""
Pure GEDCOM formatting without file I/O operations

Turns stored people and normalized relationships into GEDCOM lines. Helper
functions never raise: malformed input degrades to None, an empty string or
the unknown sex code.
"""

from datetime import date, datetime

from .date_utils import MONTH_ABBREVIATIONS
from .models import GedcomFamilyUnit


SUPPORTED_EXPORT_VERSIONS = ('5.5.1', '7.0')
DEFAULT_EXPORT_VERSION = '5.5.1'
SOURCE_NAME = 'FamilyTree App'
SUBMITTER_NUMBER = 1


def format_gedcom_name(first_name: str | None, last_name: str | None) -> str:
    """'John' + 'Smith' -> 'John /Smith/'; surname only -> '/Smith/'"""
    first = (first_name or '').strip()
    last = (last_name or '').strip()

    if not first and not last:
        return ''
    if not last:
        return first
    if not first:
        return f'/{last}/'
    return f'{first} /{last}/'


def format_gedcom_gender(gender: str | None) -> str:
    value = (gender or '').strip().lower() if isinstance(gender, str) else ''
    if value == 'male':
        return 'M'
    if value == 'female':
        return 'F'
    return 'U'


def format_gedcom_date(value: str | None) -> str | None:
    """
    Convert a stored YYYY-MM-DD date into GEDCOM form

    '1950-01-15' -> '15 JAN 1950', '1950-01-00' -> 'JAN 1950',
    '1950-00-00' -> '1950'. Anything that is not three dash separated
    numeric parts gives None.
    """
    if not value or not isinstance(value, str):
        return None

    parts = value.strip().split('-')
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None

    year, month, day = parts
    if int(month) == 0:
        return year

    if not 1 <= int(month) <= 12:
        return None
    month_name = MONTH_ABBREVIATIONS[int(month) - 1]

    if int(day) == 0:
        return f'{month_name} {year}'
    return f'{int(day)} {month_name} {year}'


def format_gedcom_id(prefix: str, number: int) -> str:
    return f'@{prefix}{number}@'


def format_export_date(when: date | datetime | None = None) -> str:
    """Header DATE value, e.g. '17 OCT 2026'"""
    when = when or datetime.now()
    return f'{when.day} {MONTH_ABBREVIATIONS[when.month - 1]} {when.year}'


def _spouse_order(person1, person2) -> tuple[int, int]:
    """(husband_id, wife_id) for a couple; person1 is the husband unless genders say otherwise"""
    gender1 = (getattr(person1, 'gender', None) or '').lower()
    gender2 = (getattr(person2, 'gender', None) or '').lower()
    if gender1 == 'female' or gender2 == 'male':
        return person2.id, person1.id
    return person1.id, person2.id


def build_families(people: list, relationships: list) -> list[GedcomFamilyUnit]:
    """
    Derive GEDCOM family units from normalized relationships

    Each couple is one family, whichever direction(s) its spouse rows were
    stored in. A child joins the family of its father and mother pair; a
    child with one known parent joins that parent's single-parent family.
    Relationships pointing outside ``people`` are ignored.
    """
    people_by_id = {person.id: person for person in people}
    families: dict[frozenset, GedcomFamilyUnit] = {}

    for rel in relationships:
        if rel.type != 'spouse':
            continue
        if rel.person1_id not in people_by_id or rel.person2_id not in people_by_id:
            continue
        key = frozenset((rel.person1_id, rel.person2_id))
        if key not in families:
            husband_id, wife_id = _spouse_order(people_by_id[rel.person1_id], people_by_id[rel.person2_id])
            families[key] = GedcomFamilyUnit(husband_id=husband_id, wife_id=wife_id)

    child_parents: dict[int, dict[str, int]] = {}
    for rel in relationships:
        if rel.type != 'parentOf' or rel.parent_role not in ('father', 'mother'):
            continue
        if rel.person1_id not in people_by_id or rel.person2_id not in people_by_id:
            continue
        # First recorded parent per role wins
        child_parents.setdefault(rel.person2_id, {}).setdefault(rel.parent_role, rel.person1_id)

    for child_id, parents in child_parents.items():
        father_id = parents.get('father')
        mother_id = parents.get('mother')
        key = frozenset(pid for pid in (father_id, mother_id) if pid is not None)
        if key not in families:
            families[key] = GedcomFamilyUnit(husband_id=father_id, wife_id=mother_id)
        families[key].add_child(child_id)

    return list(families.values())


class GEDCOMFormatter:
    """Format people and relationships as GEDCOM lines"""

    def __init__(self, version: str = DEFAULT_EXPORT_VERSION):
        if version not in SUPPORTED_EXPORT_VERSIONS:
            raise ValueError(
                f"Unsupported GEDCOM version {version}. Supported: {', '.join(SUPPORTED_EXPORT_VERSIONS)}"
            )
        self.version = version

    def format_gedcom(self, people: list, relationships: list, user_name: str = '',
                      export_date: date | datetime | None = None) -> list[str]:
        """Format a complete GEDCOM document"""
        person_ids = {person.id: format_gedcom_id('I', index) for index, person in enumerate(people, start=1)}
        families = build_families(people, relationships)
        family_ids = [format_gedcom_id('F', index) for index in range(1, len(families) + 1)]

        spouse_links: dict[int, list[str]] = {}
        child_links: dict[int, list[str]] = {}
        for family, family_id in zip(families, family_ids):
            for member_id in family.member_ids:
                spouse_links.setdefault(member_id, []).append(family_id)
            for child_id in family.children_ids:
                child_links.setdefault(child_id, []).append(family_id)

        lines = self._format_header(user_name, export_date)
        for person in people:
            lines.extend(self._format_individual(
                person, person_ids[person.id],
                spouse_links.get(person.id, []), child_links.get(person.id, [])
            ))
        for family, family_id in zip(families, family_ids):
            lines.extend(self._format_family(family, family_id, person_ids))
        lines.extend(self._format_trailer())
        return lines

    def _format_header(self, user_name: str = '', export_date=None) -> list[str]:
        submitter = format_gedcom_id('S', SUBMITTER_NUMBER)
        return [
            "0 HEAD",
            "1 GEDC",
            f"2 VERS {self.version}",
            "1 CHAR UTF-8",
            f"1 SOUR {SOURCE_NAME}",
            f"1 DATE {format_export_date(export_date)}",
            f"1 SUBM {submitter}",
            f"0 {submitter} SUBM",
            f"1 NAME {user_name or 'Unknown'}",
        ]

    def _format_trailer(self) -> list[str]:
        return ["0 TRLR"]

    def _format_individual(self, person, gedcom_id: str, spouse_family_ids: list[str] = (),
                           child_family_ids: list[str] = ()) -> list[str]:
        """Format an INDI record"""
        lines = [f"0 {gedcom_id} INDI"]

        name = format_gedcom_name(person.first_name, person.last_name)
        if name:
            lines.append(f"1 NAME {name}")
        lines.append(f"1 SEX {format_gedcom_gender(person.gender)}")

        lines.extend(self._format_event('BIRT', person.birth_date, getattr(person, 'birth_place', None)))
        lines.extend(self._format_event('DEAT', person.death_date, getattr(person, 'death_place', None)))

        notes = (getattr(person, 'notes', None) or '').strip()
        if notes:
            note_lines = self._split_note(notes)
            lines.append(f"1 NOTE {note_lines[0]}")
            lines.extend(f"2 CONT {line}".rstrip() for line in note_lines[1:])

        photo_url = getattr(person, 'photo_url', None)
        if photo_url:
            lines.append("1 OBJE")
            lines.append(f"2 FILE {photo_url}")

        lines.extend(f"1 FAMS {family_id}" for family_id in spouse_family_ids)
        lines.extend(f"1 FAMC {family_id}" for family_id in child_family_ids)
        return lines

    def _format_event(self, tag: str, event_date: str | None, place: str | None) -> list[str]:
        formatted_date = format_gedcom_date(event_date)
        if not formatted_date and not place:
            return []
        lines = [f"1 {tag}"]
        if formatted_date:
            lines.append(f"2 DATE {formatted_date}")
        if place:
            lines.append(f"2 PLAC {place}")
        return lines

    def _format_family(self, family: GedcomFamilyUnit, family_id: str, person_ids: dict) -> list[str]:
        """Format a FAM record"""
        lines = [f"0 {family_id} FAM"]
        if family.husband_id is not None:
            lines.append(f"1 HUSB {person_ids[family.husband_id]}")
        if family.wife_id is not None:
            lines.append(f"1 WIFE {person_ids[family.wife_id]}")
        lines.extend(f"1 CHIL {person_ids[child_id]}" for child_id in family.children_ids)
        return lines

    def _split_note(self, note: str) -> list[str]:
        """One GEDCOM line per line of text; blank lines become empty CONT lines"""
        return [line.rstrip() for line in note.splitlines()] or ['']


class GEDCOMFileWriter:
    """Handles GEDCOM file I/O operations"""

    @staticmethod
    def write_gedcom_file(lines: list[str], output_file: str) -> None:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines) + '\n')

    @staticmethod
    def read_gedcom_file(input_file: str) -> str:
        with open(input_file, encoding='utf-8-sig') as f:
            return f.read()
