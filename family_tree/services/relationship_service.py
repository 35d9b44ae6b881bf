"""
Relationship listing and creation, plus parent candidate lookup for a person
"""

from family_tree.repositories.person_repository import PersonRepository
from family_tree.repositories.relationship_repository import RelationshipRepository

from .base_service import BaseService
from .exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError, handle_service_exceptions
from .relationship_graph import create_parent_filter, validate_parent_link
from .relationship_helpers import denormalize_relationship, normalize_relationship, validate_relationship_data


class RelationshipService(BaseService):

    def __init__(self, db_session=None, person_repository=None, relationship_repository=None):
        super().__init__(db_session)
        self.person_repository = person_repository or PersonRepository(self.db_session)
        self.relationship_repository = relationship_repository or RelationshipRepository(self.db_session)

    def _visible_relationships(self, user) -> list:
        if user.view_all_records:
            return self.relationship_repository.get_all()
        return self.relationship_repository.get_for_owner(user.id)

    def _visible_people(self, user) -> list:
        if user.view_all_records:
            return self.person_repository.get_all()
        return self.person_repository.get_for_owner(user.id)

    def _owned_person(self, person_id: int, user):
        person = self.person_repository.get_by_id(person_id)
        if person is None:
            raise NotFoundError(f'Person {person_id} not found')
        if person.user_id != user.id:
            raise ForbiddenError('One or both persons do not exist or do not belong to you')
        return person

    def list_relationships(self, user) -> list[dict]:
        return [denormalize_relationship(rel) for rel in self._visible_relationships(user)]

    @handle_service_exceptions()
    def create_relationship(self, data, user) -> dict:
        """
        Validate and store a relationship given in API form

        A spouse link is stored in both directions.

        Raises:
            ValidationError: bad payload, role already filled or impossible parent
            NotFoundError / ForbiddenError: a person is missing or not the caller's
            ConflictError: the relationship already exists
        """
        validate_relationship_data(data)
        normalized = normalize_relationship(
            data['person1_id'], data['person2_id'], data['type'], data.get('parent_role')
        )
        person1 = self._owned_person(normalized['person1_id'], user)
        person2 = self._owned_person(normalized['person2_id'], user)

        if normalized['type'] == 'parentOf':
            role = normalized['parent_role']
            if self.relationship_repository.get_parent(person2.id, role) is not None:
                raise ValidationError(f'Person already has a {role}')
            validate_parent_link(person1, person2, self.relationship_repository.get_for_owner(user.id))

        if (self.relationship_repository.exists(person1.id, person2.id, normalized['type'])
                or (normalized['type'] == 'spouse'
                    and self.relationship_repository.exists(person2.id, person1.id, 'spouse'))):
            raise ConflictError('This relationship already exists')

        rows = [{**normalized, 'user_id': user.id}]
        if normalized['type'] == 'spouse':
            rows.append({**normalized, 'person1_id': person2.id, 'person2_id': person1.id, 'user_id': user.id})

        created = self.run_atomically(
            lambda: self.relationship_repository.bulk_create(rows),
            f"create {normalized['type']} relationship"
        )
        self.logger.info(f"Created {data['type']} relationship {person1.id} -> {person2.id} for user {user.id}")
        return denormalize_relationship(created[0])

    @handle_service_exceptions()
    def parent_candidates(self, child_id: int, role: str, user) -> list[dict]:
        """People who may be linked as ``child_id``'s mother or father"""
        if role not in ('mother', 'father'):
            raise ValidationError('role must be "mother" or "father"')

        child = self.person_repository.get_by_id(child_id)
        if child is None or (not user.view_all_records and child.user_id != user.id):
            raise NotFoundError('Person not found')

        allowed = create_parent_filter(child, role, self._visible_relationships(user))
        return [person.to_dict() for person in self._visible_people(user) if allowed(person)]
