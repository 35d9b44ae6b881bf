"""
Standardized identity lookup and error handling for API blueprints
"""
from functools import wraps

from flask import current_app, request, session
from sqlalchemy.exc import SQLAlchemyError

from family_tree.repositories.user_repository import UserRepository
from family_tree.services.duplicate_service import CONFIDENCE_THRESHOLD
from family_tree.services.exceptions import AuthenticationError, ServiceError, translate_database_error
from family_tree.shared.api_response_formatter import APIResponseFormatter
from family_tree.shared.logging_config import get_project_logger


logger = get_project_logger(__name__)


def get_current_user():
    """The signed-in owner from the session cookie.

    Raises:
        AuthenticationError: no user id in the session, or the user no longer exists
    """
    user_id = session.get('user_id')
    if user_id is None:
        raise AuthenticationError('Authentication required')

    user = UserRepository().get_by_id(user_id)
    if user is None:
        session.pop('user_id', None)
        raise AuthenticationError('Authentication required')
    return user


def handle_api_errors(func):
    """Decorator turning service and database errors into JSON error responses."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ServiceError as e:
            if e.status_code >= 500:
                logger.error(f"{func.__name__} failed: {e.message}")
            else:
                logger.info(f"{func.__name__} rejected request: {e.code} {e.message}")
            return APIResponseFormatter.service_error(e)
        except SQLAlchemyError as e:
            logger.error(f"Database error in {func.__name__}: {e}")
            return APIResponseFormatter.service_error(translate_database_error(e))
    return wrapper


def get_json_body() -> dict | list | None:
    """Parsed JSON body, or None when the body is absent or not JSON"""
    return request.get_json(silent=True)


def threshold_arg():
    """``threshold`` query value, falling back to the configured default"""
    value = request.args.get('threshold')
    if value in (None, ''):
        return current_app.config.get('DUPLICATE_THRESHOLD', CONFIDENCE_THRESHOLD)
    return value
