"""
Repository for GEDCOM upload sessions
"""

from family_tree.database import db
from family_tree.database.models import GedcomImportSession
from family_tree.services.exceptions import ConflictError

from .base_repository import ModelRepository


class ImportSessionRepository(ModelRepository[GedcomImportSession]):
    """Upload sessions are always looked up by (upload_id, user_id)"""

    def __init__(self, db_session=None):
        super().__init__(GedcomImportSession, db_session)

    def get_for_owner(self, upload_id: str, user_id: int) -> GedcomImportSession | None:
        def _query():
            return self.db_session.execute(
                db.select(GedcomImportSession).where(
                    GedcomImportSession.upload_id == upload_id,
                    GedcomImportSession.user_id == user_id,
                )
            ).scalars().first()

        return self.safe_query(_query, f"get upload session {upload_id}")

    def save_preview(self, upload_id: str, user_id: int, **fields) -> GedcomImportSession:
        """Create the session or replace the stored preview of an existing one"""
        session = self.get_for_owner(upload_id, user_id)
        if session is None:
            return self.create(upload_id=upload_id, user_id=user_id, **fields)
        if session.status == 'imported':
            raise ConflictError('This upload has already been imported')
        return self.update(session, resolution_decisions=[], **fields)
