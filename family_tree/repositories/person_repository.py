"""
Repository for people
"""

from family_tree.database import db
from family_tree.database.models import Person, Relationship

from .base_repository import ModelRepository


class PersonRepository(ModelRepository[Person]):
    """Data access for Person rows"""

    def __init__(self, db_session=None):
        super().__init__(Person, db_session)

    def get_for_owner(self, user_id: int) -> list[Person]:
        def _query():
            return self.db_session.execute(
                db.select(Person).where(Person.user_id == user_id).order_by(Person.id)
            ).scalars().all()

        return self.safe_query(_query, f"get people for user {user_id}")

    def get_by_ids(self, person_ids) -> list[Person]:
        person_ids = list(person_ids)
        if not person_ids:
            return []

        def _query():
            return self.db_session.execute(
                db.select(Person).where(Person.id.in_(person_ids))
            ).scalars().all()

        return self.safe_query(_query, "get people by ids")

    def delete_with_relationships(self, person: Person) -> None:
        """Delete a person and every relationship row that mentions them"""
        def _delete():
            self.db_session.execute(
                db.delete(Relationship).where(
                    db.or_(Relationship.person1_id == person.id, Relationship.person2_id == person.id)
                )
            )
            self.db_session.delete(person)

        return self.safe_operation(_delete, f"delete person {person.id}")
