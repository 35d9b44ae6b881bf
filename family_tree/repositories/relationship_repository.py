"""
Repository for relationships (stored in normalized form)
"""

from family_tree.database import db
from family_tree.database.models import Relationship

from .base_repository import ModelRepository


class RelationshipRepository(ModelRepository[Relationship]):
    """Data access for Relationship rows"""

    def __init__(self, db_session=None):
        super().__init__(Relationship, db_session)

    def get_for_owner(self, user_id: int) -> list[Relationship]:
        def _query():
            return self.db_session.execute(
                db.select(Relationship).where(Relationship.user_id == user_id).order_by(Relationship.id)
            ).scalars().all()

        return self.safe_query(_query, f"get relationships for user {user_id}")

    def get_for_persons(self, person_ids) -> list[Relationship]:
        """Rows in which any of the given people takes part"""
        person_ids = list(person_ids)
        if not person_ids:
            return []

        def _query():
            return self.db_session.execute(
                db.select(Relationship).where(
                    db.or_(Relationship.person1_id.in_(person_ids), Relationship.person2_id.in_(person_ids))
                ).order_by(Relationship.id)
            ).scalars().all()

        return self.safe_query(_query, "get relationships for persons")

    def existing_keys(self, person_ids) -> set[tuple]:
        """(person1_id, person2_id, type, parent_role) of stored rows touching the given people"""
        return {rel.key for rel in self.get_for_persons(person_ids)}

    def exists(self, person1_id: int, person2_id: int, rel_type: str) -> bool:
        def _query():
            return self.db_session.execute(
                db.select(Relationship.id).where(
                    Relationship.person1_id == person1_id,
                    Relationship.person2_id == person2_id,
                    Relationship.type == rel_type,
                ).limit(1)
            ).first() is not None

        return self.safe_query(_query, "check relationship exists")

    def get_parent(self, child_id: int, role: str) -> Relationship | None:
        def _query():
            return self.db_session.execute(
                db.select(Relationship).where(
                    Relationship.person2_id == child_id,
                    Relationship.type == 'parentOf',
                    Relationship.parent_role == role,
                ).limit(1)
            ).scalars().first()

        return self.safe_query(_query, f"get {role} of person {child_id}")

    def delete_many(self, relationships: list[Relationship]) -> None:
        def _delete():
            for rel in relationships:
                self.db_session.delete(rel)

        return self.safe_operation(_delete, f"delete {len(relationships)} relationships")
