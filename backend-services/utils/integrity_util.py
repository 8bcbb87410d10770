"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging
from typing import Callable, Optional

from models.proxy_request_model import Operation
from models.response_model import ResponseModel
from models.upstream_model import UpstreamResult
from utils.error_util import GatewayError, IntegrityError, UpstreamError, UpstreamProcessing

logger = logging.getLogger('scaleup.gateway')

_LOG_BODY_LIMIT = 2000

ProcessingPolicy = Callable[[Operation, UpstreamResult], Optional[GatewayError]]


def _preview(text: str) -> str:
    if len(text) > _LOG_BODY_LIMIT:
        return text[:_LOG_BODY_LIMIT] + '...[TRUNCATED]'
    return text


def remap_async_generation(operation: Operation, result: UpstreamResult) -> Optional[GatewayError]:
    """Generation keeps running upstream after its reverse proxy answers 504.

    Report that as accepted/processing so the caller polls the user lookup
    instead of treating the generation as failed.
    """
    if operation is Operation.GENERATE and result.status_code == 504:
        return UpstreamProcessing(
            details='Image is being generated. Please wait and poll the user lookup for the result.',
            upstream_status=504,
        )
    return None


def no_processing_remap(operation: Operation, result: UpstreamResult) -> Optional[GatewayError]:
    return None


class ResponseIntegrityChecker:
    """Classify an upstream outcome before anything is relayed to the caller."""

    def __init__(self, processing_policy: ProcessingPolicy = remap_async_generation):
        self.processing_policy = processing_policy

    def check(self, operation: Operation, result: UpstreamResult, request_id: str | None = None) -> ResponseModel:
        if not result.ok:
            return self._check_failure(operation, result, request_id)

        if result.declares_json and result.status_code != 204:
            if result.is_empty:
                logger.error(f'{request_id} | Upstream {operation.value} returned empty JSON body ({result.status_code})')
                raise IntegrityError(details='Backend returned empty JSON response')
            if not result.has_valid_json():
                logger.error(f'{request_id} | Upstream {operation.value} returned invalid JSON: {_preview(result.text)}')
                raise IntegrityError(details='Backend returned malformed JSON')

        return ResponseModel(
            status_code=result.status_code,
            response_headers={'X-Request-ID': request_id} if request_id else None,
            body=result.body,
            content_type=result.content_type,
        )

    def _check_failure(self, operation: Operation, result: UpstreamResult, request_id: str | None) -> ResponseModel:
        status = result.status_code
        logger.error(f'{request_id} | Upstream {operation.value} error ({status}): {_preview(result.text)}')

        remapped = self.processing_policy(operation, result)
        if remapped is not None:
            logger.info(f'{request_id} | Upstream {status} remapped to {remapped.status_code} ({remapped.code})')
            raise remapped

        # Only client/server error statuses are relayed as-is
        relay_status = status if 400 <= status < 600 else 502

        if result.is_empty:
            raise UpstreamError(
                details=f'Server returned {status} with no response body',
                status_code=relay_status,
            )
        if result.has_valid_json():
            return ResponseModel(
                status_code=relay_status,
                response_headers={'X-Request-ID': request_id} if request_id else None,
                body=result.body,
                content_type=result.content_type if result.declares_json else 'application/json',
            )
        raise UpstreamError(
            details=f'Server returned {status}',
            status_code=relay_status,
        )
