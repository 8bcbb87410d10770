"""
Standardized error response utilities
"""

import logging
from typing import Any

from models.response_model import ErrorEnvelope, ResponseModel
from utils.constants import Messages
from utils.error_codes import ErrorCode, default_status
from utils.response_util import process_response

logger = logging.getLogger('scaleup.gateway')


class GatewayError(Exception):
    """Base for every failure the gateway turns into an error envelope.

    ``details`` must only carry operation context (field name, size, status
    code); never exception text or raw upstream content.
    """

    code = ErrorCode.INTERNAL_ERROR
    message = Messages.UNEXPECTED

    def __init__(
        self,
        message: str | None = None,
        details: str | None = None,
        status_code: int | None = None,
        upstream_status: int | None = None,
    ):
        self.message = message or self.message
        self.details = details
        self.status_code = status_code or default_status(self.code)
        self.upstream_status = upstream_status
        super().__init__(self.message)

    def envelope(self) -> ErrorEnvelope:
        return ErrorEnvelope(
            error=self.message,
            code=self.code,
            details=self.details[:1024] if self.details else None,
            status=self.upstream_status,
        )


class RequestValidationFailed(GatewayError):
    code = ErrorCode.VALIDATION_ERROR
    message = 'Invalid request'

    def __init__(self, message: str | None = None, details: str | None = None, field: str | None = None, status_code: int | None = None):
        super().__init__(message, details, status_code=status_code)
        self.field = field


class RequestTooLarge(RequestValidationFailed):
    """Streamed request body passed the configured size limit."""

    message = Messages.REQUEST_TOO_LARGE

    def __init__(self, limit: int):
        super().__init__(details=f'Maximum request size is {limit} bytes', status_code=413)
        self.limit = limit


class NotConfiguredError(GatewayError):
    code = ErrorCode.NOT_CONFIGURED
    message = Messages.NOT_CONFIGURED


class UpstreamUnreachableError(GatewayError):
    code = ErrorCode.UPSTREAM_UNREACHABLE
    message = Messages.UNREACHABLE

    def __init__(self, target_url: str, details: str | None = None):
        super().__init__(details=details)
        # Redacted URL, for logs only
        self.target_url = target_url


class UpstreamTimeoutError(GatewayError):
    code = ErrorCode.UPSTREAM_TIMEOUT
    message = Messages.TIMEOUT

    def __init__(self, target_url: str, timeout: float, details: str | None = None):
        super().__init__(details=details)
        self.target_url = target_url
        self.timeout = timeout


class UpstreamProcessing(GatewayError):
    code = ErrorCode.UPSTREAM_PROCESSING
    message = Messages.PROCESSING


class UpstreamError(GatewayError):
    code = ErrorCode.UPSTREAM_ERROR
    message = Messages.BACKEND_ERROR


class IntegrityError(GatewayError):
    code = ErrorCode.INTEGRITY_ERROR
    message = Messages.INVALID_RESPONSE


class ClientDisconnected(Exception):
    """Inbound client went away while an upstream call was in flight."""


def normalize_error(exc: BaseException) -> GatewayError:
    if isinstance(exc, GatewayError):
        return exc
    return GatewayError()


def error_response(request_id: str | None, exc: BaseException) -> ResponseModel:
    """Convert any failure into the uniform envelope carried by ResponseModel."""
    err = normalize_error(exc)
    if err is not exc:
        logger.error(f'{request_id} | Unhandled gateway failure: {type(exc).__name__}', exc_info=exc)
    else:
        logger.warning(f'{request_id} | {err.code} ({err.status_code}): {err.message}')
    headers = {'X-Request-ID': request_id} if request_id else None
    return ResponseModel(
        status_code=err.status_code,
        response_headers=headers,
        error=err.envelope(),
    )


def create_error_response(
    status_code: int,
    error_code: str,
    error_message: str,
    request_id: str | None = None,
    details: str | None = None,
) -> Any:
    """
    Create a standardized error JSONResponse without raising.
    """
    response_headers = {}
    if request_id:
        response_headers['X-Request-ID'] = request_id
    response_model = ResponseModel(
        status_code=status_code,
        response_headers=response_headers,
        error=ErrorEnvelope(error=error_message, code=error_code, details=details[:1024] if details else None),
    )
    return process_response(response_model)
