"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging

import httpx

from models.proxy_request_model import Operation, ProxyRequest
from models.response_model import ResponseModel
from models.upstream_model import UpstreamTarget
from utils.config_util import GatewaySettings
from utils.constants import Defaults, Headers, Messages
from utils.error_util import (
    ClientDisconnected,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnreachableError,
    error_response,
)
from utils.gateway_utils import content_disposition
from utils.http_client import Receive, call_upstream
from utils.integrity_util import (
    ProcessingPolicy,
    ResponseIntegrityChecker,
    no_processing_remap,
    remap_async_generation,
)
from utils.transform_util import transform_payload
from utils.upstream_locator import BACKEND, UpstreamLocator, redact_url
from utils.validation_util import RequestValidator

logger = logging.getLogger('scaleup.gateway')

SERVICE_LABELS = {
    Operation.GENERATE: 'generation service',
    Operation.USER_LOOKUP: 'image lookup service',
    Operation.OTP_GENERATE: 'OTP service',
    Operation.OTP_VERIFY: 'OTP service',
    Operation.REGISTER: 'registration service',
    Operation.IMAGE: 'image host',
    Operation.ANALYTICS: 'analytics service',
}

TIMEOUT_DETAILS = {
    Operation.GENERATE: 'Image generation is taking longer than expected. Please try again.',
}


class GatewayService:
    """Validate, transform, call and check one proxied operation.

    Every public operation returns a ResponseModel; failures anywhere in the
    pipeline come back as an error envelope, except ClientDisconnected which
    propagates so the route can drop the response.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        client: httpx.AsyncClient | None = None,
        processing_policy: ProcessingPolicy | None = None,
    ):
        self.settings = settings
        self.locator = UpstreamLocator(settings)
        self.validator = RequestValidator(
            max_photo_bytes=settings.max_photo_bytes,
            allowed_image_hosts=settings.allowed_image_hosts,
        )
        if processing_policy is None:
            processing_policy = remap_async_generation if settings.async_generation_remap else no_processing_remap
        self.checker = ResponseIntegrityChecker(processing_policy)
        self._http_client = client
        self._owns_client = client is None

    def get_http_client(self) -> httpx.AsyncClient:
        """Return the pooled AsyncClient, creating it on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.build_timeout(self.settings.upstream_timeout_seconds),
                limits=self.settings.build_limits(),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def backend_target(self, path: str) -> UpstreamTarget:
        prefix = self.settings.scaleup_upstream_prefix.strip('/')
        path = path.lstrip('/')
        return UpstreamTarget(
            base_url=self.locator.base_url(BACKEND),
            path=f'{prefix}/{path}' if prefix else path,
        )

    def timeout_for(self, operation: Operation) -> float:
        if operation is Operation.GENERATE:
            return self.settings.generate_timeout_seconds
        return self.settings.upstream_timeout_seconds

    async def _relay(
        self,
        request: ProxyRequest,
        method: str,
        target: UpstreamTarget,
        receive: Receive | None = None,
        **body,
    ) -> ResponseModel:
        operation = request.operation
        timeout = self.timeout_for(operation)
        label = SERVICE_LABELS[operation]
        try:
            result = await call_upstream(
                self.get_http_client(),
                method,
                target,
                timeout=timeout,
                connect_timeout=self.settings.http_connect_timeout,
                headers={Headers.REQUEST_ID: request.request_id},
                receive=receive,
                request_id=request.request_id,
                **body,
            )
        except UpstreamTimeoutError as e:
            e.details = TIMEOUT_DETAILS.get(operation, f'The {label} did not respond within {timeout:g}s.')
            raise
        except UpstreamUnreachableError as e:
            e.details = f'Unable to connect to {label} at {redact_url(target.base_url)}. Please try again later.'
            raise
        return self.checker.check(operation, result, request.request_id)

    async def _run(self, request: ProxyRequest, pipeline) -> ResponseModel:
        logger.info(f'{request.request_id} | Gateway {request.operation.value} started')
        try:
            return await pipeline()
        except ClientDisconnected:
            raise
        except Exception as e:
            return error_response(request.request_id, e)

    async def generate(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        async def pipeline():
            self.validator.validate_generate(request)
            target = self.backend_target('generate')
            data = {k: str(v) for k, v in transform_payload(Operation.GENERATE, request.fields).items()}
            files = {
                name: (att.filename or name, att.content, att.content_type)
                for name, att in request.attachments.items()
            }
            return await self._relay(request, 'POST', target, receive, data=data, files=files)

        return await self._run(request, pipeline)

    async def lookup_user(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        async def pipeline():
            identifier = self.validator.validate_identifier(request.path_params.get('identifier', ''))
            target = self.backend_target(f'user/{identifier}')
            return await self._relay(request, 'GET', target, receive)

        return await self._run(request, pipeline)

    async def otp_generate(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        async def pipeline():
            self.validator.validate_otp_generate(request)
            payload = transform_payload(Operation.OTP_GENERATE, request.fields)
            target = self.backend_target('otp/generate')
            return await self._relay(request, 'POST', target, receive, json=payload)

        return await self._run(request, pipeline)

    async def otp_verify(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        async def pipeline():
            self.validator.validate_otp_verify(request)
            payload = transform_payload(Operation.OTP_VERIFY, request.fields)
            target = self.backend_target('otp/verify')
            return await self._relay(request, 'POST', target, receive, json=payload)

        return await self._run(request, pipeline)

    async def register(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        async def pipeline():
            self.validator.validate_register(request)
            payload = transform_payload(Operation.REGISTER, request.fields)
            target = self.backend_target('register')
            return await self._relay(request, 'POST', target, receive, json=payload)

        return await self._run(request, pipeline)

    async def proxy_image(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        """Relay an image by absolute URL as a download, for allow-listed hosts only."""
        async def pipeline():
            url = self.validator.validate_image_url(request.fields.get('url'))
            target = UpstreamTarget(base_url=url)
            try:
                result = await call_upstream(
                    self.get_http_client(),
                    'GET',
                    target,
                    timeout=self.timeout_for(Operation.IMAGE),
                    default_content_type=Defaults.BINARY_CONTENT_TYPE,
                    connect_timeout=self.settings.http_connect_timeout,
                    receive=receive,
                    request_id=request.request_id,
                )
            except UpstreamUnreachableError as e:
                e.details = f'Unable to fetch image from {redact_url(url)}.'
                raise
            if not result.ok:
                status = result.status_code if 400 <= result.status_code < 600 else 502
                raise UpstreamError(
                    Messages.IMAGE_FETCH_FAILED,
                    details=f'Server returned {result.status_code}',
                    status_code=status,
                )
            if not result.body:
                raise UpstreamError(Messages.IMAGE_FETCH_FAILED, details='Server returned no image data')
            relayed = self.checker.check(Operation.IMAGE, result, request.request_id)
            headers = dict(relayed.response_headers or {})
            headers[Headers.CONTENT_DISPOSITION] = content_disposition(
                request.fields.get('disposition'), request.fields.get('filename')
            )
            return relayed.model_copy(update={'response_headers': headers})

        return await self._run(request, pipeline)
