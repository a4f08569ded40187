"""
SmartExam - Custom Exceptions and Exception Handlers
"""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger('exceptions')


class SmartExamException(Exception):
    """Base exception for SmartExam"""
    status_code = 400

    def __init__(self, message: str, code: str = "SMARTEXAM_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            'success': False,
            'code': self.code,
            'message': self.message
        }


class NotAuthenticatedException(SmartExamException):
    """No user identity could be resolved"""
    status_code = 401

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message, code="NOT_AUTHENTICATED")
        logger.warning(f"Authentication error: {message}")


class SyncFailedException(SmartExamException):
    """Listing or writing remote records failed; the whole operation fails"""
    status_code = 502

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Sync failed: {reason}", code="SYNC_FAILED")
        logger.error(f"Sync failed: {reason}")


class StoreWriteFailedException(SmartExamException):
    """Local store write failed"""
    status_code = 500

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Local store write failed: {reason}", code="STORE_WRITE_FAILED")
        logger.error(f"Store write failed: {reason}")


class TrialStateException(SmartExamException):
    """Trial state could not be resolved or the transition is not allowed"""
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message, code="TRIAL_STATE_ERROR")
        logger.warning(f"Trial state error: {message}")


class ValidationException(SmartExamException):
    """Validation-related exceptions"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")
        logger.warning(f"Validation error: {message}")


class RemoteServiceError(SmartExamException):
    """Network, auth or HTTP failure talking to the remote document service"""
    status_code = 502

    def __init__(self, message: str, status: int = None):
        self.status = status
        super().__init__(message, code="REMOTE_SERVICE_ERROR")


class ItemFetchFailed:
    """Record of a single item that could not be fetched. Never raised."""

    def __init__(self, item_id: str, reason: str, pack_id: str = None):
        self.item_id = item_id
        self.reason = reason
        self.pack_id = pack_id

    def to_dict(self):
        return {'item_id': self.item_id, 'pack_id': self.pack_id, 'reason': self.reason}

    def __repr__(self):
        return f"ItemFetchFailed(item_id={self.item_id!r}, pack_id={self.pack_id!r}, reason={self.reason!r})"


def register_exception_handlers(app):
    """Register exception handlers with Flask app"""

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle HTTP exceptions"""
        return jsonify({
            'success': False,
            'code': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code

    @app.errorhandler(SmartExamException)
    def handle_smartexam_exception(e):
        """Handle SmartExam custom exceptions with their own status code"""
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(e):
        """Handle all other exceptions"""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'code': 'INTERNAL_ERROR',
            'message': 'An unexpected error occurred'
        }), 500
