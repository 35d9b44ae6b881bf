"""
Base service class providing common functionality for all services
"""
from collections.abc import Callable
from typing import Any

from family_tree.database import db
from family_tree.shared.logging_config import get_project_logger


class BaseService:
    """Base class for services: logger, session and the unit-of-work helper"""

    def __init__(self, db_session=None):
        self.logger = get_project_logger(self.__class__.__module__)
        self.db_session = db_session or db.session

    def run_atomically(self, work: Callable[[], Any], operation_name: str = "unit of work") -> Any:
        """
        Run a block of repository calls as one transaction

        Commits when the block returns; rolls back and re-raises on any error
        so that no partial write survives.
        """
        try:
            result = work()
            self.db_session.commit()
            self.logger.debug(f"Committed {operation_name}")
            return result
        except Exception as e:
            self.db_session.rollback()
            self.logger.error(f"Rolled back {operation_name}: {e}")
            raise
