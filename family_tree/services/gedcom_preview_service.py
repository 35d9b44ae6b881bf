"""
GEDCOM upload sessions: parse, preview, duplicate review and resolution decisions
"""

import uuid

from family_tree.repositories.import_session_repository import ImportSessionRepository
from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.shared.gedcom_parser import GEDCOMParser, get_statistics
from family_tree.shared.models import MatchCandidate

from .base_service import BaseService
from .duplicate_service import CONFIDENCE_THRESHOLD, find_duplicates
from .exceptions import ConflictError, NotFoundError, ValidationError, handle_service_exceptions
from .gedcom_import_service import RESOLUTIONS, check_decision_ownership
from .import_errors import generate_error_log_csv


DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
SORT_FIELDS = ('name', 'birth_date', 'death_date')
ALLOWED_EXTENSIONS = ('.ged', '.gedcom')


def read_upload(filename: str | None, data: bytes) -> str:
    """
    Text of an uploaded GEDCOM file

    Raises:
        ValidationError: missing file, wrong extension, empty or not UTF-8
    """
    if not filename:
        raise ValidationError('No file provided')
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise ValidationError('Only .ged files are supported')
    if not data:
        raise ValidationError('File is empty')
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValidationError('File is not valid UTF-8 text')


def display_name(individual: dict) -> str:
    if individual.get('name'):
        return individual['name'].replace('/', '').strip()
    return f"{individual.get('first_name') or ''} {individual.get('last_name') or ''}".strip()


def tag_individuals(individuals: list[dict], duplicates: list[dict]) -> list[dict]:
    """
    Add ``status`` (new or duplicate) and the best ``duplicate_match`` to each individual

    ``duplicates`` is sorted best first, so the first match seen for an
    individual is the one kept.
    """
    best_match = {}
    for duplicate in duplicates:
        gedcom_id = duplicate['gedcom_person']['id']
        if gedcom_id not in best_match:
            best_match[gedcom_id] = {
                'existing_person_id': duplicate['existing_person']['id'],
                'existing_person_name': duplicate['existing_person']['name'],
                'confidence': duplicate['confidence'],
                'matching_fields': duplicate['matching_fields'],
            }

    tagged = []
    for individual in individuals:
        match = best_match.get(individual['gedcom_id'])
        tagged.append({
            **individual,
            'display_name': display_name(individual),
            'status': 'duplicate' if match else 'new',
            'duplicate_match': match,
        })
    return tagged


def build_summary(individuals: list[dict]) -> dict:
    return {
        'total_individuals': len(individuals),
        'new_count': sum(1 for individual in individuals if individual['status'] == 'new'),
        'duplicate_count': sum(1 for individual in individuals if individual['status'] == 'duplicate'),
        'existing_count': 0,
    }


def _brief(individual: dict, **extra) -> dict:
    return {
        'gedcom_id': individual['gedcom_id'],
        'name': individual.get('display_name') or display_name(individual),
        'birth_date': individual.get('birth_date'),
        'death_date': individual.get('death_date'),
        **extra,
    }


def _positive_int(value, name: str, default: int) -> int:
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {name} parameter (must be positive integer)')
    if number < 1:
        raise ValidationError(f'Invalid {name} parameter (must be positive integer)')
    return number


class GedcomPreviewService(BaseService):
    """Upload sessions keyed by (upload_id, user_id)"""

    def __init__(self, db_session=None, session_repository=None, person_repository=None,
                 relationship_repository=None, parser=None):
        super().__init__(db_session)
        self.session_repository = session_repository or ImportSessionRepository(self.db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)
        self.parser = parser or GEDCOMParser()

    def get_session(self, upload_id: str, user_id: int):
        import_session = self.session_repository.get_for_owner(upload_id, user_id)
        if import_session is None:
            raise NotFoundError('Preview data not found. Please upload and parse a GEDCOM file first.')
        return import_session

    @handle_service_exceptions()
    def create_preview(self, content: str, user_id: int, upload_id: str | None = None,
                       threshold: int = CONFIDENCE_THRESHOLD) -> dict:
        """
        Parse an upload, find duplicates among the owner's people and store the session

        Raises:
            ValidationError: empty file, missing or unsupported GEDCOM version
        """
        parsed = self.parser.parse(content)
        if not parsed['success']:
            raise ValidationError(parsed['error'])

        upload_id = upload_id or uuid.uuid4().hex
        existing = self._owner_candidates(user_id)
        duplicates = find_duplicates(parsed['individuals'], existing, threshold)
        individuals = tag_individuals(parsed['individuals'], duplicates)
        summary = build_summary(individuals)
        statistics = get_statistics(parsed)

        def work():
            return self.session_repository.save_preview(
                upload_id, user_id,
                gedcom_version=parsed['version'],
                individuals=individuals,
                families=parsed['families'],
                duplicates=duplicates,
                summary=summary,
                errors=parsed['errors'],
                status='previewed',
            )

        self.run_atomically(work, f"store preview {upload_id}")
        self.logger.info(
            f"Stored preview {upload_id} for user {user_id}: {summary['total_individuals']} individuals, "
            f"{summary['duplicate_count']} possible duplicates, {len(parsed['errors'])} warnings"
        )
        return {
            'upload_id': upload_id,
            'version': parsed['version'],
            'statistics': statistics,
            'summary': summary,
            'duplicates': duplicates,
            'errors': parsed['errors'],
        }

    def _owner_candidates(self, user_id: int) -> list[MatchCandidate]:
        parents: dict[int, set[int]] = {}
        for rel in self.relationship_repository.get_for_owner(user_id):
            if rel.type == 'parentOf':
                parents.setdefault(rel.person2_id, set()).add(rel.person1_id)
        return [
            MatchCandidate.from_person(person, parents.get(person.id))
            for person in self.person_repository.get_for_owner(user_id)
        ]

    def get_preview_individuals(self, upload_id: str, user_id: int, page=None, limit=None,
                                sort_by: str | None = None, sort_order: str | None = None,
                                search: str | None = None) -> dict:
        """One page of the previewed individuals, optionally filtered by name"""
        page = _positive_int(page, 'page', 1)
        limit = min(_positive_int(limit, 'limit', DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        sort_by = sort_by or 'name'
        sort_order = (sort_order or 'asc').lower()
        if sort_by not in SORT_FIELDS:
            raise ValidationError(f"Invalid sort_by parameter. Must be one of: {', '.join(SORT_FIELDS)}")
        if sort_order not in ('asc', 'desc'):
            raise ValidationError('Invalid sort_order parameter. Must be asc or desc')

        individuals = list(self.get_session(upload_id, user_id).individuals)

        if search:
            needle = search.lower()
            individuals = [
                individual for individual in individuals
                if any(needle in (individual.get(key) or '').lower()
                       for key in ('display_name', 'first_name', 'last_name'))
            ]

        sort_key = 'display_name' if sort_by == 'name' else sort_by
        individuals.sort(key=lambda individual: individual.get(sort_key) or '', reverse=sort_order == 'desc')

        total = len(individuals)
        offset = (page - 1) * limit
        return {
            'individuals': individuals[offset:offset + limit],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': (total + limit - 1) // limit,
            },
        }

    def get_preview_person(self, upload_id: str, user_id: int, gedcom_id: str) -> dict:
        """A previewed individual with the parents, spouses and children named in the file"""
        import_session = self.get_session(upload_id, user_id)
        by_id = {individual['gedcom_id']: individual for individual in import_session.individuals}
        person = by_id.get(gedcom_id)
        if person is None:
            raise NotFoundError(f'Individual {gedcom_id} not found in upload')

        relationships = {'parents': [], 'spouses': [], 'children': []}
        for family in import_session.families:
            husband_id, wife_id = family.get('husband_id'), family.get('wife_id')

            if gedcom_id in family.get('children_ids', []):
                for parent_id, role in ((husband_id, 'father'), (wife_id, 'mother')):
                    if parent_id in by_id:
                        relationships['parents'].append(_brief(by_id[parent_id], relationship_type=role))

            if gedcom_id in (husband_id, wife_id):
                spouse_id = wife_id if gedcom_id == husband_id else husband_id
                if spouse_id in by_id:
                    relationships['spouses'].append(_brief(by_id[spouse_id]))
                for child_id in family.get('children_ids', []):
                    if child_id in by_id:
                        relationships['children'].append(_brief(by_id[child_id]))

        return {'person': person, 'relationships': relationships}

    def get_preview_tree(self, upload_id: str, user_id: int) -> dict:
        """Individuals and the spouse / parent edges between them, for drawing a tree"""
        import_session = self.get_session(upload_id, user_id)
        individuals = [
            {key: individual.get(key) for key in
             ('gedcom_id', 'display_name', 'first_name', 'last_name', 'birth_date', 'death_date', 'sex', 'status')}
            for individual in import_session.individuals
        ]

        relationships = []
        for family in import_session.families:
            husband_id, wife_id = family.get('husband_id'), family.get('wife_id')
            if husband_id and wife_id:
                relationships.append({'type': 'spouse', 'person1': husband_id, 'person2': wife_id})
            for child_id in family.get('children_ids', []):
                for parent_id, role in ((husband_id, 'father'), (wife_id, 'mother')):
                    if parent_id:
                        relationships.append(
                            {'type': 'parent', 'parent': parent_id, 'child': child_id, 'parent_role': role}
                        )

        return {'individuals': individuals, 'relationships': relationships}

    def get_preview_summary(self, upload_id: str, user_id: int) -> dict:
        return self.get_session(upload_id, user_id).summary

    def get_duplicates(self, upload_id: str, user_id: int) -> list[dict]:
        return self.get_session(upload_id, user_id).duplicates

    @handle_service_exceptions()
    def save_resolution_decisions(self, upload_id: str, user_id: int, decisions) -> dict:
        """
        Validate and store merge / skip / import_as_new decisions

        Raises:
            ValidationError: malformed decision, unknown resolution or GEDCOM id
            ConflictError: the upload was already imported
            NotFoundError / ForbiddenError: referenced existing person missing or not owned
        """
        import_session = self.get_session(upload_id, user_id)
        if import_session.status == 'imported':
            raise ConflictError('This upload has already been imported')
        if not isinstance(decisions, list):
            raise ValidationError('decisions must be a list')

        known_ids = {individual['gedcom_id'] for individual in import_session.individuals}
        cleaned = []
        for decision in decisions:
            if not isinstance(decision, dict):
                raise ValidationError('Each decision must be an object')
            gedcom_id = decision.get('gedcom_id')
            resolution = decision.get('resolution')
            existing_id = decision.get('existing_person_id')

            if gedcom_id not in known_ids:
                raise ValidationError(f'Unknown GEDCOM id: {gedcom_id}')
            if resolution not in RESOLUTIONS:
                raise ValidationError(f'Invalid resolution option: {resolution}')
            if existing_id is not None and (isinstance(existing_id, bool) or not isinstance(existing_id, int)):
                raise ValidationError('existing_person_id must be a number')
            if resolution == 'merge' and existing_id is None:
                raise ValidationError(f'Merge decision for {gedcom_id} needs existing_person_id')

            cleaned.append({'gedcom_id': gedcom_id, 'resolution': resolution, 'existing_person_id': existing_id})

        check_decision_ownership(cleaned, user_id, self.person_repository)

        summary = dict(import_session.summary or {})
        summary['existing_count'] = sum(1 for decision in cleaned if decision['resolution'] == 'skip')

        self.run_atomically(
            lambda: self.session_repository.update(
                import_session, resolution_decisions=cleaned, summary=summary, status='resolved'
            ),
            f"save decisions for {upload_id}"
        )
        self.logger.info(f"Saved {len(cleaned)} resolution decisions for upload {upload_id}")
        return {'success': True, 'saved': len(cleaned), 'summary': summary}

    def get_resolution_decisions(self, upload_id: str, user_id: int) -> list[dict]:
        return self.get_session(upload_id, user_id).resolution_decisions or []

    def get_error_log_csv(self, upload_id: str, user_id: int) -> str:
        return generate_error_log_csv(self.get_session(upload_id, user_id).errors or [])

    def clear_preview(self, upload_id: str, user_id: int) -> None:
        import_session = self.get_session(upload_id, user_id)
        self.run_atomically(lambda: self.session_repository.delete(import_session), f"clear preview {upload_id}")
