"""
Repository for owner accounts
"""

from family_tree.database import db
from family_tree.database.models import User

from .base_repository import ModelRepository


class UserRepository(ModelRepository[User]):

    def __init__(self, db_session=None):
        super().__init__(User, db_session)

    def get_by_email(self, email: str) -> User | None:
        def _query():
            return self.db_session.execute(
                db.select(User).where(User.email == email)
            ).scalars().first()

        return self.safe_query(_query, "get user by email")
