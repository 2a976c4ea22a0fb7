# Overview: Error taxonomy shared by services and routes, plus the Flask handlers
# that render it as the JSON error envelope.

"""
Every failure a service can report is a ServiceError carrying an ErrorCode.
Routes never build error JSON themselves: they let the exception propagate
and the handlers registered here produce

    {"error": {"code": "...", "message": "...", "details": {...}}}

with the HTTP status mapped from the code. Anything that is not a
ServiceError becomes INTERNAL_SERVER_ERROR with a generic message; the
original exception is only written to the server log.
"""

from __future__ import annotations

from enum import Enum

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_IN_USE = "RESOURCE_IN_USE"
    DUPLICATE_CODE = "DUPLICATE_CODE"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    MISSING_PARAMETERS = "MISSING_PARAMETERS"
    REPORT_EXECUTION_FAILED = "REPORT_EXECUTION_FAILED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


HTTP_STATUS = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.RESOURCE_IN_USE: 400,
    ErrorCode.DUPLICATE_CODE: 400,
    ErrorCode.INSUFFICIENT_INVENTORY: 400,
    ErrorCode.MISSING_PARAMETERS: 400,
    ErrorCode.REPORT_EXECUTION_FAILED: 500,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
}


class ServiceError(Exception):
    """Base class for failures reported to API callers."""
    code = ErrorCode.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.code]

    def to_dict(self) -> dict:
        body = {"code": self.code.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class UnauthorizedError(ServiceError):
    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(ServiceError):
    code = ErrorCode.FORBIDDEN


class InvalidInputError(ServiceError):
    code = ErrorCode.INVALID_INPUT


class ValidationError(ServiceError):
    """Payload failed type/shape validation."""
    code = ErrorCode.VALIDATION_ERROR


class NotFoundError(ServiceError):
    code = ErrorCode.RESOURCE_NOT_FOUND

    @classmethod
    def for_resource(cls, resource_type: str, resource_id) -> "NotFoundError":
        return cls(
            f"{resource_type.capitalize()} with ID {resource_id} not found",
            details={"resourceType": resource_type, "resourceId": resource_id},
        )


class ResourceInUseError(ServiceError):
    code = ErrorCode.RESOURCE_IN_USE


class DuplicateCodeError(ServiceError):
    code = ErrorCode.DUPLICATE_CODE


class InsufficientInventoryError(ServiceError):
    code = ErrorCode.INSUFFICIENT_INVENTORY


class MissingParametersError(ServiceError):
    code = ErrorCode.MISSING_PARAMETERS


class ReportExecutionError(ServiceError):
    code = ErrorCode.REPORT_EXECUTION_FAILED


def error_body(code: ErrorCode, message: str, details: dict | None = None) -> dict:
    body = {"code": code.value, "message": message}
    if details:
        body["details"] = details
    return {"error": body}


def register_error_handlers(app) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(exc: ServiceError):
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        if exc.code == 404:
            code = ErrorCode.RESOURCE_NOT_FOUND
        elif exc.code == 401:
            code = ErrorCode.UNAUTHORIZED
        elif exc.code == 403:
            code = ErrorCode.FORBIDDEN
        elif exc.code and exc.code < 500:
            code = ErrorCode.INVALID_INPUT
        else:
            code = ErrorCode.INTERNAL_SERVER_ERROR
        return jsonify(error_body(code, exc.description or exc.name)), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify(error_body(
            ErrorCode.INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
        )), 500
