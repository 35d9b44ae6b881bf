"""
GEDCOM parser for reading uploaded GEDCOM 5.5.1 / 7.0 text into individuals and families
"""

import re

from .date_utils import MONTH_ABBREVIATIONS


SUPPORTED_VERSIONS = ('5.5.1', '7.0')
DATE_MODIFIERS = ('ABT', 'BEF', 'AFT', 'BET', 'CAL', 'EST')
MONTH_MAP = {name: f'{index:02d}' for index, name in enumerate(MONTH_ABBREVIATIONS, start=1)}

_NAME_PATTERN = re.compile(r'^([^/]*)\s*/([^/]*)/')
_LINE_PATTERN = re.compile(r'^\s*(\d+)\s+(?:(@[^@]+@)\s+)?(\S+)(?:\s(.*))?$')


def detect_gedcom_version(content: str) -> str | None:
    """Return the VERS value that follows '1 GEDC' in the header, if any"""
    lines = content.splitlines()
    for index, line in enumerate(lines):
        if re.match(r'^1\s+GEDC\b', line.strip()) and index + 1 < len(lines):
            match = re.match(r'^2\s+VERS\s+(.+)', lines[index + 1].strip())
            if match:
                return match.group(1).strip()
    return None


def validate_gedcom_version(version: str | None) -> dict:
    if not version:
        return {'valid': False, 'error': 'GEDCOM version not found in file'}
    if version not in SUPPORTED_VERSIONS:
        return {
            'valid': False,
            'error': f'GEDCOM version {version} is not supported. Please use version 5.5.1 or 7.0',
        }
    return {'valid': True}


def normalize_date(gedcom_date: str | None) -> dict:
    """
    Normalize a GEDCOM date value

    '15 JAN 1950' -> '1950-01-15', 'JAN 1952' -> '1952-01', '1975' -> '1975'.
    A leading ABT/BEF/AFT/BET/CAL/EST is reported in ``modifier``; for
    'BET x AND y' the lower bound is kept. ISO dates pass through unchanged.

    Returns a dict with ``valid``, ``normalized``, ``original``, ``partial``
    and ``modifier`` (or ``error`` when the value cannot be read).
    """
    invalid = {'valid': False, 'normalized': None, 'original': gedcom_date, 'error': 'Invalid date format'}
    if not gedcom_date or not isinstance(gedcom_date, str):
        return invalid

    trimmed = gedcom_date.strip()
    if re.match(r'^\d{4}-\d{2}-\d{2}$', trimmed):
        return {'valid': True, 'normalized': trimmed, 'original': gedcom_date, 'partial': False, 'modifier': None}

    modifier = None
    date_text = trimmed
    modifier_match = re.match(rf"^({'|'.join(DATE_MODIFIERS)})\s+(.+)", trimmed, re.IGNORECASE)
    if modifier_match:
        modifier = modifier_match.group(1).upper()
        date_text = modifier_match.group(2)
        if modifier == 'BET':
            date_text = re.split(r'\s+AND\s+', date_text, flags=re.IGNORECASE)[0]

    parts = date_text.upper().split()

    if len(parts) == 1 and re.match(r'^\d{4}$', parts[0]):
        return {'valid': True, 'normalized': parts[0], 'original': gedcom_date, 'partial': True,
                'modifier': modifier}

    if len(parts) == 2 and parts[0] in MONTH_MAP and re.match(r'^\d{4}$', parts[1]):
        return {'valid': True, 'normalized': f'{parts[1]}-{MONTH_MAP[parts[0]]}', 'original': gedcom_date,
                'partial': True, 'modifier': modifier}

    if (len(parts) == 3 and re.match(r'^\d{1,2}$', parts[0]) and parts[1] in MONTH_MAP
            and re.match(r'^\d{4}$', parts[2]) and 1 <= int(parts[0]) <= 31):
        return {'valid': True, 'normalized': f'{parts[2]}-{MONTH_MAP[parts[1]]}-{int(parts[0]):02d}',
                'original': gedcom_date, 'partial': False, 'modifier': modifier}

    return invalid


def parse_name(value: str) -> tuple[str, str]:
    """'John Robert /Smith/' -> ('John Robert', 'Smith'); no slashes -> whole value is the first name"""
    match = _NAME_PATTERN.match(value or '')
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return (value or '').strip(), ''


def get_statistics(parsed: dict) -> dict:
    """Counts and date range for a parsed upload"""
    individuals = parsed.get('individuals') or []
    dates = sorted(
        value for individual in individuals
        for value in (individual.get('birth_date'), individual.get('death_date')) if value
    )
    surnames = {individual.get('last_name') for individual in individuals if individual.get('last_name')}

    return {
        'total_individuals': len(individuals),
        'total_families': len(parsed.get('families') or []),
        'version': parsed.get('version'),
        'unique_surnames': len(surnames),
        'date_range': {'earliest': dates[0], 'latest': dates[-1]} if dates else None,
    }


def find_orphaned_references(individuals: list[dict], families: list[dict]) -> list[dict]:
    """Warnings for family members that reference individuals missing from the file"""
    known_ids = {individual['gedcom_id'] for individual in individuals}
    warnings = []

    for family in families:
        for field_name in ('husband_id', 'wife_id'):
            member_id = family.get(field_name)
            if member_id and member_id not in known_ids:
                warnings.append(_warning(
                    f"Orphaned {field_name[:-3]} reference: Individual {member_id} not found",
                    gedcom_id=family['gedcom_id'], field=field_name, line=family.get('line'),
                ))
        missing_children = [child for child in family.get('children_ids', []) if child not in known_ids]
        if missing_children:
            warnings.append(_warning(
                f"Orphaned child reference(s): {', '.join(missing_children)} not found in family {family['gedcom_id']}",
                gedcom_id=family['gedcom_id'], field='children_ids', line=family.get('line'),
            ))

    return warnings


def _warning(message: str, gedcom_id: str | None = None, field: str | None = None,
             line: int | None = None) -> dict:
    return {
        'severity': 'warning',
        'code': 'VALIDATION_WARNING',
        'message': message,
        'line': line,
        'gedcom_id': gedcom_id,
        'field': field,
    }


class GEDCOMParser:
    """Parse GEDCOM text into individual and family dictionaries"""

    def parse(self, content: str) -> dict:
        """
        Parse GEDCOM text

        Returns ``{success, version, individuals, families, errors}`` or
        ``{success: False, error}`` when the version is missing or unsupported.
        Unreadable dates become warnings and leave the field empty.
        """
        if not isinstance(content, str) or not content.strip():
            return {'success': False, 'error': 'GEDCOM file is empty'}

        content = content.lstrip('\ufeff')
        version = detect_gedcom_version(content)
        version_check = validate_gedcom_version(version)
        if not version_check['valid']:
            return {'success': False, 'error': version_check['error']}

        individuals = []
        families = []
        errors = []

        for record in self._split_into_records(content.splitlines()):
            line_number, level, xref, tag, _ = record[0]
            if level != 0 or not xref:
                continue
            if tag == 'INDI':
                individuals.append(self._parse_individual(record, errors))
            elif tag == 'FAM':
                families.append(self._parse_family(record))

        errors.extend(find_orphaned_references(individuals, families))

        return {
            'success': True,
            'version': version,
            'individuals': individuals,
            'families': families,
            'errors': errors,
        }

    def _split_into_records(self, lines: list[str]) -> list[list[tuple]]:
        """Group parsed lines into level-0 records; lines that are not GEDCOM lines are dropped"""
        records = []
        current_record = []

        for line_number, raw_line in enumerate(lines, start=1):
            parsed = self._parse_line(raw_line)
            if parsed is None:
                continue
            level, xref, tag, value = parsed

            if level == 0 and current_record:
                records.append(current_record)
                current_record = []

            current_record.append((line_number, level, xref, tag, value))

        if current_record:
            records.append(current_record)

        return records

    def _parse_line(self, line: str) -> tuple[int, str | None, str, str] | None:
        """'1 NAME John /Smith/' -> (1, None, 'NAME', 'John /Smith/')"""
        match = _LINE_PATTERN.match(line.rstrip('\r\n'))
        if not match:
            return None
        level, xref, tag, value = match.groups()
        return int(level), xref, tag.upper(), (value or '').strip()

    def _children(self, record: list[tuple], start_index: int) -> list[tuple]:
        """Lines nested under record[start_index]"""
        parent_level = record[start_index][1]
        nested = []
        for entry in record[start_index + 1:]:
            if entry[1] <= parent_level:
                break
            nested.append(entry)
        return nested

    def _text_with_continuations(self, record: list[tuple], start_index: int) -> str:
        """Join a NOTE value with its CONT (new line) and CONC (same line) continuations"""
        text = record[start_index][4]
        child_level = record[start_index][1] + 1
        for _, level, _, tag, value in self._children(record, start_index):
            if level != child_level:
                continue
            if tag == 'CONT':
                text += '\n' + value
            elif tag == 'CONC':
                text += value
        return text

    def _parse_individual(self, record: list[tuple], errors: list[dict]) -> dict:
        line_number, _, gedcom_id, _, _ = record[0]
        individual = {
            'gedcom_id': gedcom_id,
            'line': line_number,
            'name': None,
            'first_name': None,
            'last_name': None,
            'sex': None,
            'birth_date': None,
            'birth_date_modifier': None,
            'birth_place': None,
            'death_date': None,
            'death_date_modifier': None,
            'death_place': None,
            'notes': None,
            'photo_url': None,
            'child_of_family': None,
            'spouse_families': [],
        }
        notes = []

        for index, (_, level, _, tag, value) in enumerate(record):
            if level != 1:
                continue
            if tag == 'NAME' and individual['name'] is None:
                individual['name'] = value
                individual['first_name'], individual['last_name'] = parse_name(value)
                for _, sub_level, _, sub_tag, sub_value in self._children(record, index):
                    if sub_tag == 'GIVN' and sub_value:
                        individual['first_name'] = sub_value
                    elif sub_tag == 'SURN' and sub_value:
                        individual['last_name'] = sub_value
            elif tag == 'SEX':
                individual['sex'] = value.upper() or None
            elif tag in ('BIRT', 'DEAT'):
                prefix = 'birth' if tag == 'BIRT' else 'death'
                event = self._parse_event_subrecord(record, index)
                if event.get('place'):
                    individual[f'{prefix}_place'] = event['place']
                if event.get('date'):
                    self._apply_date(individual, prefix, tag, event, errors)
            elif tag == 'NOTE' and not value.startswith('@'):
                notes.append(self._text_with_continuations(record, index))
            elif tag == 'OBJE' and individual['photo_url'] is None:
                for _, _, _, sub_tag, sub_value in self._children(record, index):
                    if sub_tag == 'FILE' and sub_value:
                        individual['photo_url'] = sub_value
                        break
            elif tag == 'FAMC' and individual['child_of_family'] is None:
                individual['child_of_family'] = self._extract_id(value)
            elif tag == 'FAMS' and self._extract_id(value):
                individual['spouse_families'].append(self._extract_id(value))

        if notes:
            individual['notes'] = '\n'.join(notes)
        return individual

    def _apply_date(self, individual: dict, prefix: str, tag: str, event: dict, errors: list[dict]) -> None:
        result = normalize_date(event['date'])
        if result['valid']:
            individual[f'{prefix}_date'] = result['normalized']
            individual[f'{prefix}_date_modifier'] = result.get('modifier')
            return
        errors.append(_warning(
            f"Invalid date format in {tag} tag: {event['date']}",
            gedcom_id=individual['gedcom_id'], field=f'{prefix}_date', line=event.get('line'),
        ))

    def _parse_family(self, record: list[tuple]) -> dict:
        line_number, _, gedcom_id, _, _ = record[0]
        family = {
            'gedcom_id': gedcom_id,
            'line': line_number,
            'husband_id': None,
            'wife_id': None,
            'children_ids': [],
            'marriage_date': None,
        }

        for index, (_, level, _, tag, value) in enumerate(record):
            if level != 1:
                continue
            if tag == 'HUSB' and family['husband_id'] is None:
                family['husband_id'] = self._extract_id(value)
            elif tag == 'WIFE' and family['wife_id'] is None:
                family['wife_id'] = self._extract_id(value)
            elif tag == 'CHIL':
                child_id = self._extract_id(value)
                if child_id and child_id not in family['children_ids']:
                    family['children_ids'].append(child_id)
            elif tag == 'MARR':
                event = self._parse_event_subrecord(record, index)
                result = normalize_date(event.get('date'))
                if result['valid']:
                    family['marriage_date'] = result['normalized']

        return family

    def _parse_event_subrecord(self, record: list[tuple], start_index: int) -> dict:
        """DATE and PLAC directly under an event line"""
        event_data = {}
        child_level = record[start_index][1] + 1
        for line_number, level, _, tag, value in self._children(record, start_index):
            if level != child_level:
                continue
            if tag == 'DATE' and 'date' not in event_data:
                event_data['date'] = value
                event_data['line'] = line_number
            elif tag == 'PLAC' and 'place' not in event_data:
                event_data['place'] = value
        return event_data

    def _extract_id(self, value: str) -> str | None:
        """'@I1@' -> '@I1@'; anything without a pointer gives None"""
        match = re.search(r'@[^@]+@', value or '')
        return match.group(0) if match else None
