"""
Merging two stored people: the source is folded into the target and deleted
"""

from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository
from family_tree.shared.date_utils import date_parts, date_specificity

from .base_service import BaseService
from .exceptions import ForbiddenError, NotFoundError, ValidationError, handle_service_exceptions
from .relationship_helpers import denormalize_relationship


MERGE_FIELDS = (
    'first_name', 'last_name', 'gender', 'birth_date', 'birth_place',
    'death_date', 'death_place', 'photo_url', 'notes',
)


def _is_date(value) -> bool:
    return isinstance(value, str) and date_parts(value)[0] is not None


def select_best_value(source_value, target_value):
    """
    Pick the value the merged person keeps

    A present value beats an empty one, a more specific date beats a vaguer
    one, a longer string beats a shorter one; ties keep the target's value.
    """
    if not source_value and not target_value:
        return target_value if target_value is not None else source_value
    if source_value and not target_value:
        return source_value
    if target_value and not source_value:
        return target_value

    if _is_date(source_value) and _is_date(target_value):
        source_specificity = date_specificity(source_value)
        target_specificity = date_specificity(target_value)
        if source_specificity != target_specificity:
            return source_value if source_specificity > target_specificity else target_value

    if len(str(source_value)) > len(str(target_value)):
        return source_value
    return target_value


def select_best_gender(source_gender: str | None, target_gender: str | None) -> str:
    """'unspecified' never wins over a known gender"""
    known = [gender for gender in (target_gender, source_gender) if gender and gender != 'unspecified']
    return known[0] if known else 'unspecified'


def merged_values(source, target) -> dict:
    merged = {}
    for field_name in MERGE_FIELDS:
        source_value = getattr(source, field_name)
        target_value = getattr(target, field_name)
        if field_name == 'gender':
            merged[field_name] = select_best_gender(source_value, target_value)
        else:
            merged[field_name] = select_best_value(source_value, target_value)
    return merged


def validate_merge(source, target) -> list[str]:
    """Reasons the two people cannot be merged; empty when they can"""
    errors = []
    if source.user_id != target.user_id:
        errors.append('Cannot merge records across different users')

    source_gender, target_gender = source.gender, target.gender
    if (source_gender and target_gender
            and 'unspecified' not in (source_gender, target_gender)
            and source_gender != target_gender):
        errors.append(f'Gender mismatch: Cannot merge {source_gender} into {target_gender}')
    return errors


def _parent_of(person_id: int, role: str, relationships: list):
    for rel in relationships:
        if rel.person2_id == person_id and rel.type == 'parentOf' and rel.parent_role == role:
            return rel
    return None


def detect_relationship_conflicts(source_id: int, target_id: int,
                                  source_relationships: list, target_relationships: list) -> list[str]:
    """Parent roles for which source and target have different parents"""
    conflicts = []
    for role in ('mother', 'father'):
        source_parent = _parent_of(source_id, role, source_relationships)
        target_parent = _parent_of(target_id, role, target_relationships)
        if source_parent and target_parent and source_parent.person1_id != target_parent.person1_id:
            conflicts.append(role)
    return conflicts


def transferred_relationships(source_id: int, target_id: int, source_relationships: list,
                              kept_target_keys: set) -> list[dict]:
    """
    Source relationship rows re-pointed at the target

    Rows that would link the target to itself or that the target already
    has are dropped.
    """
    transferred = []
    seen = set(kept_target_keys)
    for rel in source_relationships:
        person1_id = target_id if rel.person1_id == source_id else rel.person1_id
        person2_id = target_id if rel.person2_id == source_id else rel.person2_id
        key = (person1_id, person2_id, rel.type, rel.parent_role)
        if person1_id == person2_id or key in seen:
            continue
        seen.add(key)
        transferred.append({
            'person1_id': person1_id,
            'person2_id': person2_id,
            'type': rel.type,
            'parent_role': rel.parent_role,
            'user_id': rel.user_id,
        })
    return transferred


class PersonMergeService(BaseService):
    """Preview and execute person merges for the people a user owns"""

    def __init__(self, db_session=None, person_repository=None, relationship_repository=None):
        super().__init__(db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)

    def _load_pair(self, source_id, target_id, user) -> tuple:
        if source_id is None:
            raise ValidationError('source_id is required')
        if target_id is None:
            raise ValidationError('target_id is required')
        if source_id == target_id:
            raise ValidationError('Cannot merge person into themselves')

        source = self.person_repository.get_by_id(source_id)
        if source is None:
            raise NotFoundError('Source person not found')
        target = self.person_repository.get_by_id(target_id)
        if target is None:
            raise NotFoundError('Target person not found')

        if source.user_id != user.id:
            raise ForbiddenError('Source person does not belong to current user')
        if target.user_id != user.id:
            raise ForbiddenError('Target person does not belong to current user')
        return source, target

    def preview(self, source_id, target_id, user) -> dict:
        """What merging ``source_id`` into ``target_id`` would do, without writing anything"""
        source, target = self._load_pair(source_id, target_id, user)
        source_relationships = self.relationship_repository.get_for_persons([source.id])
        target_relationships = self.relationship_repository.get_for_persons([target.id])

        errors = validate_merge(source, target)
        conflicts = detect_relationship_conflicts(source.id, target.id, source_relationships, target_relationships)
        warnings = [
            f'Both people have different {role}s - merge will keep the source {role}' for role in conflicts
        ]
        merged = merged_values(source, target)

        return {
            'can_merge': not errors,
            'validation': {'errors': errors, 'warnings': warnings, 'conflict_fields': conflicts},
            'source': source.to_dict(),
            'target': target.to_dict(),
            'merged': {'id': target.id, **merged, 'user_id': target.user_id},
            'comparison': {
                field_name: {
                    'source': getattr(source, field_name),
                    'target': getattr(target, field_name),
                    'merged': merged[field_name],
                }
                for field_name in MERGE_FIELDS
            },
            'relationships_to_transfer': [denormalize_relationship(rel) for rel in source_relationships],
            'existing_relationships': [denormalize_relationship(rel) for rel in target_relationships],
        }

    @handle_service_exceptions()
    def execute_merge(self, source_id, target_id, user) -> dict:
        """
        Fold the source person into the target in one transaction

        The target takes the best value of each field, keeps the source's
        parent where the two disagree, and inherits the source's
        relationships; the source is then deleted.

        Raises:
            ValidationError: same person twice, missing ids or incompatible people
            NotFoundError: either person does not exist
            ForbiddenError: either person belongs to someone else
        """
        source, target = self._load_pair(source_id, target_id, user)
        errors = validate_merge(source, target)
        if errors:
            raise ValidationError('; '.join(errors))

        source_relationships = self.relationship_repository.get_for_persons([source.id])
        target_relationships = self.relationship_repository.get_for_persons([target.id])
        conflicts = detect_relationship_conflicts(source.id, target.id, source_relationships, target_relationships)
        merged = merged_values(source, target)

        def work():
            self.person_repository.update(target, **merged)

            dropped = [_parent_of(target.id, role, target_relationships) for role in conflicts]
            self.relationship_repository.delete_many(dropped)
            kept_keys = {rel.key for rel in target_relationships if rel not in dropped}

            new_rows = transferred_relationships(source.id, target.id, source_relationships, kept_keys)
            self.relationship_repository.delete_many([rel for rel in source_relationships if rel not in dropped])
            self.relationship_repository.bulk_create(new_rows)
            self.person_repository.delete(source)
            return len(new_rows)

        transferred = self.run_atomically(work, f"merge person {source.id} into {target.id}")
        self.logger.info(
            f"Merged person {source_id} into {target_id}: {transferred} relationships transferred, "
            f"conflicts resolved for {conflicts or 'none'}"
        )
        return {
            'success': True,
            'target_id': target_id,
            'source_id': source_id,
            'relationships_transferred': transferred,
            'merged_data': target.to_dict(),
        }
