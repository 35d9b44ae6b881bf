"""
API response formatting utilities for consistent API responses across blueprints
"""

from typing import Any

from flask import jsonify


class APIResponseFormatter:
    """Utility class for formatting consistent API responses"""

    @staticmethod
    def success(data: Any = None, message: str = "", status_code: int = 200) -> tuple:
        """Format a successful API response; dict data is merged into the body"""
        response = {'success': True}
        if message:
            response['message'] = message

        if data is not None:
            if isinstance(data, dict):
                response.update(data)
            else:
                response['data'] = data

        return jsonify(response), status_code

    @staticmethod
    def error(error_message: str, status_code: int = 400, code: str | None = None,
              details: dict | None = None) -> tuple:
        """Format an error API response"""
        response = {
            'success': False,
            'error': error_message
        }
        if code:
            response['code'] = code
        if details:
            response.update(details)

        return jsonify(response), status_code

    @staticmethod
    def service_error(error) -> tuple:
        """Error response for a ServiceError, keeping its status and code"""
        return APIResponseFormatter.error(
            error.message,
            status_code=error.status_code,
            code=error.code,
            details={'can_retry': error.can_retry}
        )
