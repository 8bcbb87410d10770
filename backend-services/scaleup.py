"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import os
import sys
import uuid
from contextlib import asynccontextmanager

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from middleware.logging_middleware import GlobalLoggingMiddleware
from routes.gateway_routes import gateway_router
from services.analytics_service import AnalyticsService
from services.gateway_service import GatewayService
from utils.config_util import GatewaySettings, get_settings
from utils.constants import Headers, Messages
from utils.error_codes import ErrorCode
from utils.error_util import RequestTooLarge, create_error_response
from utils.logging_util import configure_logger

gateway_logger = configure_logger('scaleup.gateway', get_settings())
access_logger = configure_logger('scaleup.access', get_settings())

HTTP_ERROR_MESSAGES = {
    404: 'Not found',
    405: 'Method not allowed',
}


class LimitedStreamReader:
    """
    Wrapper around the ASGI receive channel that counts streamed body bytes.

    Raises RequestTooLarge once the running total passes ``max_size``, so a
    chunked upload never reaches a handler in full.
    """
    def __init__(self, receive, max_size: int):
        self.receive = receive
        self.max_size = max_size
        self.bytes_received = 0
        self.over_limit = False

    async def __call__(self):
        if self.over_limit:
            raise RequestTooLarge(self.max_size)

        message = await self.receive()

        if message.get('type') == 'http.request':
            self.bytes_received += len(message.get('body', b'') or b'')
            if self.bytes_received > self.max_size:
                self.over_limit = True
                raise RequestTooLarge(self.max_size)

        return message


def create_app(settings: GatewaySettings | None = None, http_client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the gateway application.

    ``http_client`` lets callers (tests, embedding apps) supply the outbound
    client; when omitted the gateway owns a pooled client and closes it on
    shutdown.
    """
    settings = settings or get_settings()
    gateway = GatewayService(settings, client=http_client)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        gateway_logger.info('Scaleup gateway starting')
        try:
            yield
        finally:
            await gateway.aclose()
            gateway_logger.info('Scaleup gateway stopped')

    app = FastAPI(
        title='scaleup-gateway',
        description='Thin gateway between the Scaleup website and its generation, OTP, registration and analytics backends.',
        version='1.0.0',
        lifespan=app_lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.analytics = AnalyticsService(gateway)

    def _too_large(rid: str | None):
        return create_error_response(
            413,
            ErrorCode.VALIDATION_ERROR,
            Messages.REQUEST_TOO_LARGE,
            request_id=rid,
            details=f'Maximum request size is {settings.max_body_size_bytes} bytes',
        )

    # Registration order matters: the last middleware added runs first
    @app.middleware('http')
    async def body_size_limit(request: Request, call_next):
        """Reject request bodies above max_body_size_bytes.

        Declared Content-Length is checked before the body is read; bodies
        without one (chunked) are counted as they stream in.
        """
        rid = getattr(request.state, 'request_id', None)
        limit = settings.max_body_size_bytes
        cl = request.headers.get('content-length')
        if cl:
            try:
                size = int(cl)
            except ValueError:
                size = -1
            if size < 0:
                return create_error_response(
                    400,
                    ErrorCode.VALIDATION_ERROR,
                    'Invalid Content-Length',
                    request_id=rid,
                )
            if size > limit:
                gateway_logger.warning(f'{rid} | Request body rejected: Content-Length {cl} exceeds {limit}')
                return _too_large(rid)
            return await call_next(request)
        if request.method not in ('POST', 'PUT', 'PATCH'):
            return await call_next(request)
        limited_reader = LimitedStreamReader(request.receive, limit)
        request._receive = limited_reader
        try:
            response = await call_next(request)
        except Exception:
            # RequestTooLarge may arrive wrapped in an exception group
            if not limited_reader.over_limit:
                raise
            response = None
        if limited_reader.over_limit:
            gateway_logger.warning(f'{rid} | Request body rejected: stream exceeded {limit} bytes')
            return _too_large(rid)
        return response

    app.add_middleware(GlobalLoggingMiddleware)

    @app.middleware('http')
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'no-referrer')
        return response

    @app.middleware('http')
    async def request_id_middleware(request: Request, call_next):
        rid = request.headers.get(Headers.REQUEST_ID) or request.headers.get('request-id')
        if not rid:
            rid = str(uuid.uuid4())
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[Headers.REQUEST_ID] = rid
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = HTTP_ERROR_MESSAGES.get(exc.status_code, 'Invalid request')
        response = create_error_response(
            exc.status_code,
            ErrorCode.VALIDATION_ERROR if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR,
            message,
            request_id=getattr(request.state, 'request_id', None),
            details=f'{request.method} {request.url.path}',
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = sorted({'.'.join(str(p) for p in err.get('loc', ())[1:]) for err in exc.errors()} - {''})
        return create_error_response(
            400,
            ErrorCode.VALIDATION_ERROR,
            'Invalid request',
            request_id=getattr(request.state, 'request_id', None),
            details=f'Invalid fields: {", ".join(fields)}' if fields else None,
        )

    @app.exception_handler(500)
    async def internal_server_error_handler(request: Request, exc: Exception):
        rid = getattr(request.state, 'request_id', None)
        gateway_logger.error(f'{rid} | Unhandled error: {type(exc).__name__}', exc_info=exc)
        return create_error_response(
            500,
            ErrorCode.INTERNAL_ERROR,
            Messages.UNEXPECTED,
            request_id=rid,
        )

    app.include_router(gateway_router, prefix='/api', tags=['Gateway'])
    return app


scaleup = create_app()


def run():
    server_port = int(os.getenv('PORT', 5001))
    workers = int(os.getenv('THREADS', 1))
    gateway_logger.info(f'Started scaleup gateway with {workers} workers on port {server_port}')
    uvicorn.run(
        'scaleup:scaleup',
        host='0.0.0.0',
        port=server_port,
        workers=workers,
        log_level='info',
    )


def main():
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', '8000'))
    try:
        uvicorn.run(
            'scaleup:scaleup',
            host=host,
            port=port,
            reload=os.getenv('DEBUG', 'false').lower() == 'true'
        )
    except Exception as e:
        gateway_logger.error(f'Failed to start server: {str(e)}')
        raise


if __name__ == '__main__':
    if len(sys.argv) > 1 and sys.argv[1] == 'run':
        run()
    else:
        main()
