"""
Error types and JSON error handlers for the TutorStack API.

Every failure leaves the app as ``{'success': False, 'message', 'code'}``
with an optional ``details`` object.
"""

from flask import jsonify, current_app
from typing import Optional, Dict, Any


class TutorStackError(Exception):
    """Base exception carrying an error code and HTTP status."""

    def __init__(
        self,
        message: str,
        code: str = 'UNKNOWN_ERROR',
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return _error_body(self.message, self.code, self.details)


class NotFoundError(TutorStackError):
    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(
            message=message,
            code='NOT_FOUND',
            status_code=404,
            details={'resource': resource} if resource else None
        )


class ValidationError(TutorStackError):
    """Request payload or stored progress failed validation."""

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(
            message=message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={'errors': errors} if errors else None
        )


def _error_body(message: str, code: str, details: Optional[Dict] = None) -> dict:
    body = {'success': False, 'message': message, 'code': code}
    if details:
        body['details'] = details
    return body


def success_response(data: Any = None, message: str = None) -> dict:
    """Envelope for a successful API result."""
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    return response


def register_error_handlers(app):
    """Register JSON error handlers; the app serves no HTML pages."""

    @app.errorhandler(TutorStackError)
    def handle_tutorstack_error(error):
        current_app.logger.error(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify(_error_body('Endpoint not found', 'NOT_FOUND')), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify(_error_body('Method not allowed', 'METHOD_NOT_ALLOWED')), 405

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        return jsonify(_error_body('Internal server error', 'SERVER_ERROR')), 500
