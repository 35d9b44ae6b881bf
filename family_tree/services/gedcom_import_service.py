"""
GEDCOM import: turn a previewed upload plus resolution decisions into stored people and relationships

The module-level functions are pure and build the import plan; the service
executes the plan inside one transaction.
"""

from sqlalchemy.exc import SQLAlchemyError

from family_tree.repositories.import_session_repository import ImportSessionRepository
from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.shared.date_utils import to_storage_date

from .base_service import BaseService
from .exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
    translate_database_error,
)
from .relationship_helpers import ParentOf, ParentRole, RelationshipKind, Spouse


RESOLUTIONS = ('merge', 'skip', 'import_as_new')

DATE_MODIFIER_NOTES = {
    'ABT': '(Date approximate)',
    'BEF': '(Date before)',
    'AFT': '(Date after)',
    'CAL': '(Date calculated)',
    'EST': '(Date estimated)',
    'BET': '(Date between)',
}


def map_gedcom_sex_to_gender(sex: str | None) -> str:
    if not sex:
        return 'unspecified'
    return {'M': 'male', 'F': 'female', 'U': 'unspecified'}.get(sex.strip().upper(), 'other')


def append_date_modifier_to_notes(notes: str | None, modifier: str | None) -> str | None:
    """Record an approximate/bounded date as a line in the notes"""
    if not modifier:
        return notes
    text = DATE_MODIFIER_NOTES.get(modifier.upper(), f'(Date {modifier.lower()})')
    if not notes or not notes.strip():
        return text
    return f'{notes}\n{text}'


def map_gedcom_person_to_schema(individual: dict, user_id: int) -> dict:
    """Person row values for a parsed GEDCOM individual"""
    notes = individual.get('notes') or None
    notes = append_date_modifier_to_notes(notes, individual.get('birth_date_modifier'))
    notes = append_date_modifier_to_notes(notes, individual.get('death_date_modifier'))

    return {
        'first_name': individual.get('first_name') or '',
        'last_name': individual.get('last_name') or '',
        'gender': map_gedcom_sex_to_gender(individual.get('sex')),
        'birth_date': to_storage_date(individual.get('birth_date')),
        'birth_place': individual.get('birth_place') or None,
        'death_date': to_storage_date(individual.get('death_date')),
        'death_place': individual.get('death_place') or None,
        'photo_url': individual.get('photo_url') or None,
        'notes': notes,
        'user_id': user_id,
    }


def merge_updates(values: dict) -> dict:
    """Fields a merge writes onto the existing person: only what the GEDCOM actually provides"""
    return {
        key: value for key, value in values.items()
        if key != 'user_id' and value not in (None, '') and not (key == 'gender' and value == 'unspecified')
    }


def apply_duplicate_resolutions(individuals: list[dict], decisions: list[dict]) -> dict:
    """
    Partition individuals by their resolution decision

    merge maps the GEDCOM id onto the existing person and queues an update;
    skip drops the individual from everything, relationships included;
    import_as_new, an unknown resolution or no decision imports a new person.
    """
    decision_map = {decision.get('gedcom_id'): decision for decision in decisions or []}
    individuals_to_import = []
    individuals_to_merge = []
    gedcom_id_mapping = {}

    for individual in individuals:
        decision = decision_map.get(individual['gedcom_id'])
        resolution = decision.get('resolution') if decision else None

        if resolution == 'merge':
            gedcom_id_mapping[individual['gedcom_id']] = decision['existing_person_id']
            individuals_to_merge.append({
                'gedcom_id': individual['gedcom_id'],
                'existing_person_id': decision['existing_person_id'],
                'individual': individual,
            })
        elif resolution == 'skip':
            continue
        else:
            individuals_to_import.append(individual)

    return {
        'individuals_to_import': individuals_to_import,
        'gedcom_id_mapping': gedcom_id_mapping,
        'individuals_to_merge': individuals_to_merge,
    }


def prepare_import_data(preview: dict, decisions: list[dict], user_id: int) -> dict:
    """Import plan: rows to insert, updates to apply and the partial GEDCOM id mapping"""
    resolved = apply_duplicate_resolutions(preview.get('individuals') or [], decisions)

    return {
        'persons_to_insert': [
            map_gedcom_person_to_schema(individual, user_id) for individual in resolved['individuals_to_import']
        ],
        'persons_to_update': [
            {
                'person_id': merge['existing_person_id'],
                'updates': merge_updates(map_gedcom_person_to_schema(merge['individual'], user_id)),
            }
            for merge in resolved['individuals_to_merge']
        ],
        'individuals_to_import': resolved['individuals_to_import'],
        'gedcom_id_mapping': resolved['gedcom_id_mapping'],
        'families': preview.get('families') or [],
    }


def build_relationships_from_families(families: list[dict], gedcom_id_mapping: dict, user_id: int) -> list[dict]:
    """
    Relationship rows for the GEDCOM families

    A couple gives two spouse rows, one per direction. Each child gives a
    father row and/or a mother row for whichever parent resolved. Members
    without a stored id are skipped; repeated rows are emitted once.
    """
    relationships = []
    seen = set()

    def add(person1_id, person2_id, kind: RelationshipKind):
        rel_type, parent_role = kind.to_storage()
        key = (person1_id, person2_id, rel_type, parent_role)
        if person1_id == person2_id or key in seen:
            return
        seen.add(key)
        relationships.append({
            'person1_id': person1_id,
            'person2_id': person2_id,
            'type': rel_type,
            'parent_role': parent_role,
            'user_id': user_id,
        })

    for family in families:
        husband_id = gedcom_id_mapping.get(family.get('husband_id'))
        wife_id = gedcom_id_mapping.get(family.get('wife_id'))

        if husband_id and wife_id:
            add(husband_id, wife_id, Spouse())
            add(wife_id, husband_id, Spouse())

        for child_gedcom_id in family.get('children_ids') or []:
            child_id = gedcom_id_mapping.get(child_gedcom_id)
            if not child_id:
                continue
            if husband_id:
                add(husband_id, child_id, ParentOf(ParentRole.FATHER))
            if wife_id:
                add(wife_id, child_id, ParentOf(ParentRole.MOTHER))

    return relationships


def build_relationships_after_insertion(import_data: dict, inserted_persons: list[dict], user_id: int) -> list[dict]:
    """Complete the id mapping with the new person ids and build the relationship rows"""
    gedcom_id_mapping = dict(import_data['gedcom_id_mapping'])
    for inserted in inserted_persons:
        gedcom_id_mapping[inserted['gedcom_id']] = inserted['person_id']
    return build_relationships_from_families(import_data['families'], gedcom_id_mapping, user_id)


def check_decision_ownership(decisions: list[dict], user_id: int, person_repository: PersonRepository) -> None:
    """Reject merge/skip decisions pointing at people that are missing or owned by someone else"""
    for decision in decisions:
        existing_id = decision.get('existing_person_id')
        if decision.get('resolution') not in ('merge', 'skip') or existing_id is None:
            continue
        person = person_repository.get_by_id(existing_id)
        if person is None:
            raise NotFoundError(f'Existing person {existing_id} not found')
        if person.user_id != user_id:
            raise ForbiddenError(f'Existing person {existing_id} does not belong to you')


class GedcomImportService(BaseService):
    """Executes a previewed GEDCOM upload"""

    def __init__(self, db_session=None, person_repository=None, relationship_repository=None,
                 session_repository=None):
        super().__init__(db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)
        self.session_repository = session_repository or ImportSessionRepository(self.db_session)

    def execute_import(self, upload_id: str, user_id: int) -> dict:
        """
        Import an upload for its owner

        Updates, inserts and relationship rows commit together or not at all.

        Returns:
            {'success': True, 'imported': {'persons', 'updated', 'relationships'}}

        Raises:
            NotFoundError: no preview for this upload and owner, or a decision
                references a person that does not exist
            ForbiddenError: a decision references another owner's person
            ConflictError: the upload was already imported
            ConstraintViolationError / TimeoutError / ServiceError: the write failed
        """
        import_session = self.session_repository.get_for_owner(upload_id, user_id)
        if import_session is None:
            raise NotFoundError('Preview data not found. Please upload and parse a GEDCOM file first.')
        if import_session.status == 'imported':
            raise ConflictError('This upload has already been imported')

        decisions = import_session.resolution_decisions or []
        for decision in decisions:
            if decision.get('resolution') == 'merge' and decision.get('existing_person_id') is None:
                raise ValidationError(f"Merge decision for {decision.get('gedcom_id')} needs existing_person_id")
        check_decision_ownership(decisions, user_id, self.person_repository)

        plan = prepare_import_data(
            {'individuals': import_session.individuals, 'families': import_session.families},
            decisions, user_id
        )

        def work():
            for update in plan['persons_to_update']:
                person = self.person_repository.get_by_id(update['person_id'])
                self.person_repository.update(person, **update['updates'])

            inserted = self.person_repository.bulk_create(plan['persons_to_insert'])
            inserted_persons = [
                {'gedcom_id': individual['gedcom_id'], 'person_id': person.id}
                for individual, person in zip(plan['individuals_to_import'], inserted)
            ]

            relationships = build_relationships_after_insertion(plan, inserted_persons, user_id)
            merged_ids = {update['person_id'] for update in plan['persons_to_update']}
            existing = self.relationship_repository.existing_keys(merged_ids)
            new_relationships = [
                rel for rel in relationships
                if (rel['person1_id'], rel['person2_id'], rel['type'], rel['parent_role']) not in existing
            ]
            self.relationship_repository.bulk_create(new_relationships)

            self.session_repository.update(import_session, status='imported')
            return {
                'persons': len(inserted),
                'updated': len(plan['persons_to_update']),
                'relationships': len(new_relationships),
            }

        try:
            counts = self.run_atomically(work, f"GEDCOM import {upload_id}")
        except ServiceError:
            self._mark_failed(upload_id, user_id)
            raise
        except SQLAlchemyError as e:
            self._mark_failed(upload_id, user_id)
            raise translate_database_error(e) from e
        except Exception as e:
            self.logger.error(f"Unexpected error importing {upload_id}: {e}", exc_info=True)
            self._mark_failed(upload_id, user_id)
            raise ServiceError(str(e)) from e

        self.logger.info(
            f"Imported upload {upload_id} for user {user_id}: {counts['persons']} persons, "
            f"{counts['updated']} updated, {counts['relationships']} relationships"
        )
        return {'success': True, 'imported': counts}

    def _mark_failed(self, upload_id: str, user_id: int) -> None:
        """Record the failure on the session in its own transaction"""
        try:
            import_session = self.session_repository.get_for_owner(upload_id, user_id)
            if import_session is not None:
                self.session_repository.update(import_session, status='failed')
                self.db_session.commit()
        except SQLAlchemyError as e:
            self.db_session.rollback()
            self.logger.error(f"Could not mark upload {upload_id} as failed: {e}")
