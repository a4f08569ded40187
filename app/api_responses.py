"""
API response envelope
Every JSON endpoint answers {"success", "code", "data"?, "message"?, "details"?}.
"""

from flask import jsonify
from functools import wraps
import logging

from exceptions import SmartExamException

logger = logging.getLogger(__name__)


class ErrorCode:
    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


DEFAULT_MESSAGES = {
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.VALIDATION_ERROR: "Invalid request parameters",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.CONFLICT: "Resource conflict",
    ErrorCode.SERVICE_UNAVAILABLE: "Service temporarily unavailable",
}


def success_response(data=None, message=None, status_code=200):
    response = {"code": ErrorCode.SUCCESS, "success": True}
    if data is not None:
        response["data"] = data
    if message:
        response["message"] = message
    return jsonify(response), status_code


def error_response(error_code=ErrorCode.INTERNAL_ERROR, message=None, details=None, status_code=400):
    response = {"code": error_code, "success": False, "message": message or DEFAULT_MESSAGES.get(error_code, "")}
    if details:
        response["details"] = details

    if error_code == ErrorCode.INTERNAL_ERROR:
        logger.error(f"{error_code}: {response['message']} | Details: {details}")
    return jsonify(response), status_code


def handle_api_errors(f):
    """
    Map domain exceptions and bad input to the error envelope.
    Anything unexpected becomes a 500 without leaking internals.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SmartExamException as e:
            return error_response(e.code, message=e.message, status_code=e.status_code)
        except ValueError as e:
            return error_response(ErrorCode.VALIDATION_ERROR, message=str(e), status_code=400)
        except KeyError as e:
            return error_response(
                ErrorCode.VALIDATION_ERROR, message=f"Missing required parameter: {str(e)}", status_code=400
            )
        except Exception as e:
            logger.error(f"Unhandled exception in {f.__name__}: {e}", exc_info=True)
            return error_response(ErrorCode.INTERNAL_ERROR, status_code=500)

    return wrapper


def not_found_response(resource_type, resource_id=None):
    if resource_id:
        message = f"{resource_type} with ID '{resource_id}' not found"
    else:
        message = f"{resource_type} not found"
    return error_response(ErrorCode.NOT_FOUND, message=message, status_code=404)


def validation_error_response(field, message):
    return error_response(
        ErrorCode.VALIDATION_ERROR,
        message=f"Validation failed for field: {field}",
        details={"field": field, "error": message},
        status_code=400,
    )
