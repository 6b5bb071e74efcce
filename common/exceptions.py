"""
Domain error taxonomy and the REST framework exception handler.

Every domain error carries an ``ErrorKind``; the handler maps the kind to an
HTTP status. Callers never need to inspect message text to tell errors apart.
"""
import logging
from enum import Enum

from django.db import IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    VALIDATION = ('validation_error', status.HTTP_400_BAD_REQUEST)
    NOT_FOUND = ('not_found', status.HTTP_404_NOT_FOUND)
    CONFLICT = ('conflict', status.HTTP_409_CONFLICT)
    BUSINESS_RULE = ('business_rule_violation', status.HTTP_422_UNPROCESSABLE_ENTITY)
    PAYMENT = ('payment_failed', status.HTTP_402_PAYMENT_REQUIRED)

    def __init__(self, code, http_status):
        self.code = code
        self.http_status = http_status


class DomainError(Exception):
    kind = ErrorKind.BUSINESS_RULE
    default_message = 'Request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION
    default_message = 'Invalid input.'


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = 'Resource not found.'


class ConflictError(DomainError):
    kind = ErrorKind.CONFLICT
    default_message = 'Resource already exists.'


class BusinessRuleError(DomainError):
    kind = ErrorKind.BUSINESS_RULE
    default_message = 'Operation is not allowed at this stage.'


class ServiceUnavailableError(BusinessRuleError):
    """An upstream service could not be reached."""
    default_message = 'A required service is unavailable. Please try again later.'


class PaymentError(DomainError):
    kind = ErrorKind.PAYMENT
    default_message = 'Payment processing failed.'


def error_response(kind, message, **extra):
    body = {'status': 'error', 'code': kind.code, 'message': message}
    body.update(extra)
    return Response(body, status=kind.http_status)


def custom_exception_handler(exc, context):
    view_name = context.get('view').__class__.__name__ if context.get('view') else 'unknown'

    if isinstance(exc, DomainError):
        logger.info(f"[{view_name}] {exc.kind.code}: {exc.message}")
        return error_response(exc.kind, exc.message)

    if isinstance(exc, IntegrityError):
        logger.warning(f"[{view_name}] Integrity error: {exc}")
        return error_response(ErrorKind.CONFLICT, 'A record with this information already exists.')

    if isinstance(exc, DRFValidationError):
        return Response(
            {'status': 'error', 'code': ErrorKind.VALIDATION.code,
             'message': 'Invalid input data.', 'details': exc.detail},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, APIException):
            response.data = {'status': 'error', 'message': str(exc.detail)}
        return response

    logger.exception(f"[{view_name}] Unhandled error: {exc}")
    return Response(
        {'status': 'error', 'message': 'Internal server error.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
