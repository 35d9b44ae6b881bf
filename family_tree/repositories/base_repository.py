"""
Base repository classes shared by the family tree repositories
"""

from abc import ABC
from typing import Any, Callable, Generic, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError

from family_tree.database import db
from family_tree.shared.logging_config import get_project_logger


ModelType = TypeVar('ModelType')


class BaseRepository(ABC):
    """
    Base repository class

    Writes are flushed, never committed: the calling service owns the
    transaction boundary (see BaseService.run_atomically).
    """

    def __init__(self, db_session=None):
        self.db_session = db_session or db.session
        self.logger = get_project_logger(self.__class__.__name__)

    def safe_operation(self, operation: Callable[[], Any], operation_name: str = "operation") -> Any:
        """
        Execute a write and flush it

        Raises:
            Exception: the original exception, after logging and rollback
        """
        try:
            result = operation()
            self.db_session.flush()
            self.logger.debug(f"Repository {operation_name} completed successfully")
            return result
        except SQLAlchemyError as e:
            self.db_session.rollback()
            self.logger.error(f"Database error in {operation_name}: {e}")
            raise
        except Exception as e:
            self.db_session.rollback()
            self.logger.error(f"Repository {operation_name} failed: {e}")
            raise

    def safe_query(self, query_func: Callable[[], Any], operation_name: str = "query") -> Any:
        """Execute a read-only query with logging"""
        try:
            result = query_func()
            self.logger.debug(f"Repository {operation_name} completed successfully")
            return result
        except Exception as e:
            self.logger.error(f"Repository {operation_name} failed: {e}")
            raise


class ModelRepository(BaseRepository, Generic[ModelType]):
    """Generic CRUD for one model class"""

    def __init__(self, model_class: type[ModelType], db_session=None):
        super().__init__(db_session)
        self.model_class = model_class

    def create(self, **kwargs) -> ModelType:
        def _create():
            instance = self.model_class(**kwargs)
            self.db_session.add(instance)
            return instance

        return self.safe_operation(_create, f"create {self.model_class.__name__}")

    def update(self, instance: ModelType, **kwargs) -> ModelType:
        """Set the given attributes; unknown keys are ignored"""
        def _update():
            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
            return instance

        return self.safe_operation(_update, f"update {self.model_class.__name__}")

    def bulk_create(self, data_list: list[dict]) -> list[ModelType]:
        """Create several instances; ids are assigned by the flush"""
        def _bulk_create():
            instances = []
            for data in data_list:
                instance = self.model_class(**data)
                self.db_session.add(instance)
                instances.append(instance)
            return instances

        return self.safe_operation(_bulk_create, f"bulk_create {len(data_list)} {self.model_class.__name__}")

    def delete(self, instance: ModelType) -> None:
        return self.safe_operation(lambda: self.db_session.delete(instance),
                                   f"delete {self.model_class.__name__}")

    def get_by_id(self, id_value: Any) -> Union[ModelType, None]:
        def _get_by_id():
            return self.db_session.get(self.model_class, id_value)

        return self.safe_query(_get_by_id, f"get {self.model_class.__name__} by id")

    def get_all(self) -> list[ModelType]:
        def _get_all():
            return self.db_session.execute(
                db.select(self.model_class).order_by(self.model_class.id)
            ).scalars().all()

        return self.safe_query(_get_all, f"get all {self.model_class.__name__}")

    def count(self) -> int:
        def _count():
            return self.db_session.execute(
                db.select(db.func.count()).select_from(self.model_class)
            ).scalar_one()

        return self.safe_query(_count, f"count {self.model_class.__name__}")
