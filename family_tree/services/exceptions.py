"""
Custom exceptions for the service layer

Every exception carries the HTTP status, a stable machine readable code and
whether the client may retry the same request.
"""

import functools

import sqlalchemy.exc


class ServiceError(Exception):
    """Base exception for service layer errors"""
    status_code = 500
    code = 'UNKNOWN_ERROR'
    can_retry = True

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ''


class ValidationError(ServiceError):
    """Raised when input validation fails"""
    status_code = 400
    code = 'VALIDATION_ERROR'
    can_retry = False


class AuthenticationError(ServiceError):
    """Raised when the request carries no caller identity"""
    status_code = 401
    code = 'AUTHENTICATION_REQUIRED'
    can_retry = False


class ForbiddenError(ServiceError):
    """Raised when a resource exists but belongs to another owner"""
    status_code = 403
    code = 'FORBIDDEN'
    can_retry = False


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found"""
    status_code = 404
    code = 'NOT_FOUND'
    can_retry = False


class ConflictError(ServiceError):
    """Raised when an operation conflicts with current state"""
    status_code = 409
    code = 'CONFLICT'
    can_retry = False


class ConstraintViolationError(ConflictError):
    """Raised when storage rejects a write because of a unique or foreign key constraint"""
    code = 'CONSTRAINT_VIOLATION'
    can_retry = True


class TimeoutError(ServiceError):
    """Raised when an operation times out"""
    status_code = 504
    code = 'TIMEOUT_ERROR'
    can_retry = True


class DatabaseError(ServiceError):
    """Raised when database operations fail"""
    status_code = 500
    code = 'DATABASE_ERROR'
    can_retry = True


def _is_timeout(error: Exception) -> bool:
    text = str(error).lower()
    return 'timeout' in text or 'timed out' in text or 'database is locked' in text


def translate_database_error(error: sqlalchemy.exc.SQLAlchemyError) -> ServiceError:
    """Map a SQLAlchemy error onto the service taxonomy"""
    if isinstance(error, sqlalchemy.exc.IntegrityError):
        text = str(error.orig if error.orig is not None else error).lower()
        if 'foreign key' in text:
            return ConstraintViolationError('A referenced record does not exist')
        if 'unique' in text or 'duplicate' in text:
            return ConstraintViolationError('A record with the same data already exists')
        return ConstraintViolationError(f'Data integrity violation: {error.orig}')
    if isinstance(error, sqlalchemy.exc.OperationalError) and _is_timeout(error):
        return TimeoutError('The database operation timed out')
    if isinstance(error, sqlalchemy.exc.OperationalError):
        return DatabaseError(f'Database connection error: {error.orig}')
    return DatabaseError(f'Database error: {error}')


def handle_service_exceptions(logger=None):
    """Decorator converting library exceptions into service exceptions"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ServiceError:
                raise
            except sqlalchemy.exc.SQLAlchemyError as e:
                if logger:
                    logger.error(f"Database error in {func.__name__}: {e}")
                raise translate_database_error(e) from e
            except ValueError as e:
                if logger:
                    logger.error(f"Validation error in {func.__name__}: {e}")
                raise ValidationError(f"Invalid input: {e}") from e
            except KeyError as e:
                if logger:
                    logger.error(f"Missing required data in {func.__name__}: {e}")
                raise ValidationError(f"Missing required field: {e}") from e
            except Exception as e:
                if logger:
                    logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
                raise ServiceError(f"Unexpected service error: {e}") from e
        return wrapper
    return decorator
