"""
Shared error handlers for the Flask application
"""

from flask import request
from werkzeug.exceptions import HTTPException

from family_tree.services.exceptions import ServiceError
from family_tree.shared.api_response_formatter import APIResponseFormatter
from family_tree.shared.logging_config import get_project_logger


logger = get_project_logger(__name__)


def register_error_handlers(app_or_blueprint):
    """Register JSON error handlers for Flask app or blueprint"""

    @app_or_blueprint.errorhandler(404)
    def not_found_error(error):
        logger.warning(f"404 error: {request.url}")
        return APIResponseFormatter.error('Resource not found', 404, code='NOT_FOUND')

    @app_or_blueprint.errorhandler(405)
    def method_not_allowed_error(error):
        logger.warning(f"405 error: {request.method} {request.url}")
        return APIResponseFormatter.error('Method not allowed', 405, code='METHOD_NOT_ALLOWED')

    @app_or_blueprint.errorhandler(413)
    def request_too_large_error(error):
        """Upload larger than MAX_CONTENT_LENGTH"""
        logger.warning(f"413 error: {request.url}")
        return APIResponseFormatter.error('File size exceeds upload limit', 413, code='PAYLOAD_TOO_LARGE')

    @app_or_blueprint.errorhandler(500)
    def internal_error(error):
        logger.error(f"500 error: {request.url} - {str(error)}")
        return APIResponseFormatter.error('Internal server error', 500, code='UNKNOWN_ERROR')

    @app_or_blueprint.errorhandler(ServiceError)
    def service_error(error):
        """Service errors that escaped a blueprint's own handling"""
        logger.warning(f"{error.code} at {request.url}: {error.message}")
        return APIResponseFormatter.service_error(error)

    @app_or_blueprint.errorhandler(Exception)
    def handle_exception(error):
        """Handle all other exceptions"""
        if isinstance(error, HTTPException):
            return APIResponseFormatter.error(error.description, error.code)

        logger.error(f"Unhandled exception: {request.url} - {str(error)}", exc_info=True)
        return APIResponseFormatter.error('An unexpected error occurred', 500, code='UNKNOWN_ERROR')
