"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging
import time
import uuid

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.datastructures import UploadFile

from models.proxy_request_model import Attachment, Framing, Operation, ProxyRequest
from models.response_model import ResponseModel
from services.analytics_service import AnalyticsService
from services.gateway_service import GatewayService
from utils.error_util import ClientDisconnected
from utils.response_util import process_response
from utils.upstream_locator import BACKEND, redact_url

gateway_router = APIRouter()

logger = logging.getLogger('scaleup.gateway')

# Non-standard status used when the caller hung up before we could answer
CLIENT_CLOSED_REQUEST = 499


def get_gateway(request: Request) -> GatewayService:
    return request.app.state.gateway


def get_analytics(request: Request) -> AnalyticsService:
    return request.app.state.analytics


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or str(uuid.uuid4())


async def _read_multipart(request: Request) -> tuple[dict, dict]:
    fields: dict = {}
    attachments: dict = {}
    form = await request.form()
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                attachments[key] = Attachment(
                    field_name=key,
                    filename=value.filename,
                    content_type=value.content_type or '',
                    content=await value.read(),
                )
            else:
                fields[key] = value
    finally:
        await form.close()
    return fields, attachments


async def _read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def _dispatch(request: Request, handler, proxy_request: ProxyRequest):
    start_time = time.time() * 1000
    try:
        result = await handler(proxy_request, request.receive)
        return process_response(result)
    except ClientDisconnected:
        logger.info(f'{proxy_request.request_id} | Client closed request, response dropped')
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    finally:
        end_time = time.time() * 1000
        logger.info(f'{proxy_request.request_id} | {proxy_request.operation.value} total time {end_time - start_time:.1f}ms')


"""
Generate an avatar image

Request (multipart/form-data):
{name, email, phone_no, district, category, organization, prompt_type, photo}
Response:
{upstream JSON, relayed verbatim}
"""


@gateway_router.post(
    '/generate',
    description='Relay an image generation request (multipart)',
    response_model=ResponseModel,
)
async def generate(request: Request, gateway: GatewayService = Depends(get_gateway)):
    request_id = _request_id(request)
    content_type = request.headers.get('content-type', '').lower()
    framing = Framing.MULTIPART
    if content_type.startswith('multipart/form-data'):
        fields, attachments = await _read_multipart(request)
    else:
        framing = Framing.JSON
        fields, attachments = await _read_json(request), {}
    proxy_request = ProxyRequest(
        operation=Operation.GENERATE,
        request_id=request_id,
        framing=framing,
        fields=fields,
        attachments=attachments,
    )
    return await _dispatch(request, gateway.generate, proxy_request)


"""
Look up a user (and their generated image) by UUID or phone number

Request:
{}
Response:
{upstream JSON, relayed verbatim}
"""


@gateway_router.get(
    '/user/{identifier}',
    description='Relay a user lookup by UUID or phone number',
    response_model=ResponseModel,
)
async def lookup_user(identifier: str, request: Request, gateway: GatewayService = Depends(get_gateway)):
    proxy_request = ProxyRequest(
        operation=Operation.USER_LOOKUP,
        request_id=_request_id(request),
        framing=Framing.NONE,
        path_params={'identifier': identifier},
    )
    return await _dispatch(request, gateway.lookup_user, proxy_request)


"""
Send an OTP

Request:
{"phoneNumber": "+911234567890"}
Response:
{upstream JSON}
"""


@gateway_router.post('/otp/generate', description='Relay an OTP send', response_model=ResponseModel)
async def otp_generate(request: Request, gateway: GatewayService = Depends(get_gateway)):
    proxy_request = ProxyRequest(
        operation=Operation.OTP_GENERATE,
        request_id=_request_id(request),
        fields=await _read_json(request),
    )
    return await _dispatch(request, gateway.otp_generate, proxy_request)


"""
Verify an OTP

Request:
{"phoneNumber": "+911234567890", "otp": "123456"}
Response:
{upstream JSON}
"""


@gateway_router.post('/otp/verify', description='Relay an OTP verification', response_model=ResponseModel)
async def otp_verify(request: Request, gateway: GatewayService = Depends(get_gateway)):
    proxy_request = ProxyRequest(
        operation=Operation.OTP_VERIFY,
        request_id=_request_id(request),
        fields=await _read_json(request),
    )
    return await _dispatch(request, gateway.otp_verify, proxy_request)


@gateway_router.post('/register', description='Relay a registration', response_model=ResponseModel)
async def register(request: Request, gateway: GatewayService = Depends(get_gateway)):
    proxy_request = ProxyRequest(
        operation=Operation.REGISTER,
        request_id=_request_id(request),
        fields=await _read_json(request),
    )
    return await _dispatch(request, gateway.register, proxy_request)


@gateway_router.get('/proxy-image', description='Download an image from an allow-listed host')
async def proxy_image(
    request: Request,
    url: str | None = Query(None, description='Absolute image URL'),
    filename: str | None = Query(None, description='Download file name'),
    disposition: str | None = Query(None, description='attachment or inline'),
    gateway: GatewayService = Depends(get_gateway),
):
    proxy_request = ProxyRequest(
        operation=Operation.IMAGE,
        request_id=_request_id(request),
        framing=Framing.NONE,
        fields={'url': url, 'filename': filename, 'disposition': disposition},
    )
    return await _dispatch(request, gateway.proxy_image, proxy_request)


@gateway_router.get('/analytics', description='Aggregated analytics snapshot', response_model=ResponseModel)
async def analytics(
    request: Request,
    range_: str = Query('day', alias='range', description='day, week or month'),
    service: AnalyticsService = Depends(get_analytics),
):
    proxy_request = ProxyRequest(
        operation=Operation.ANALYTICS,
        request_id=_request_id(request),
        framing=Framing.NONE,
        fields={'range': range_},
    )
    return await _dispatch(request, service.snapshot, proxy_request)


@gateway_router.get('/status', description='Gateway liveness and upstream resolution')
async def status(request: Request, gateway: GatewayService = Depends(get_gateway)):
    request_id = _request_id(request)
    locator = gateway.locator
    uses_fallback = locator.uses_fallback(BACKEND)
    if uses_fallback and not gateway.settings.scaleup_allow_default_host:
        upstream = None
    else:
        upstream = redact_url(locator.base_url(BACKEND))
    return process_response(
        ResponseModel(
            status_code=200,
            response_headers={'request_id': request_id},
            response={
                'status': 'online',
                'service': request.app.title,
                'version': request.app.version,
                'upstream': upstream,
                'uses_fallback_host': uses_fallback,
            },
        )
    )
