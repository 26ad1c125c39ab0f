import logging

from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class LedgerError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"
    default_code = "error"


class ValidationError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"
    default_code = "invalid"


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"
    default_code = "not_found"


class ConflictError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflicting update"
    default_code = "conflict"


class InvalidStateError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not allowed in the current loan state"
    default_code = "invalid_state"


class InternalError(LedgerError):
    default_detail = "Internal Server Error"
    default_code = "internal"


def _first_error(detail, path=""):
    """Walk a serializer error structure down to its first message."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == "non_field_errors":
                return _first_error(value, path)
            return _first_error(value, f"{path}.{key}" if path else str(key))
    if isinstance(detail, list):
        for index, value in enumerate(detail):
            if not value:
                continue
            if isinstance(value, (dict, list)):
                return _first_error(value, f"{path}.{index}" if path else str(index))
            return f"{path}: {value}" if path else str(value)
        return path
    return f"{path}: {detail}" if path else str(detail)


def ledger_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = NotFoundError()
    elif isinstance(exc, DatabaseError):
        exc = InternalError(str(exc))

    response = exception_handler(exc, context)
    if response is None:
        logger.error("Unhandled error in %s", context.get("view"), exc_info=exc)
        return Response(
            {"success": False, "message": "Internal Server Error", "statusCode": 500},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        message = _first_error(exc.detail)
    elif isinstance(exc, exceptions.NotAuthenticated):
        message = "Unauthorized request"
    else:
        message = str(exc.detail)
    response.data = {"success": False, "message": message, "statusCode": response.status_code}
    return response
