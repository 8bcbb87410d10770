import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request

from utils.constants import Headers

logger = logging.getLogger('scaleup.access')

class GlobalLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = (
            getattr(request.state, 'request_id', None)
            or request.headers.get(Headers.REQUEST_ID)
        )
        if not request_id:
            request_id = str(uuid.uuid4())
            request.state.request_id = request_id

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = (time.time() - start_time) * 1000
            logger.error(
                f"{request_id} | Request failed: {request.method} {request.url.path} "
                f"| Error: {type(e).__name__} | Time: {duration:.2f}ms",
                exc_info=True
            )
            raise

        duration = (time.time() - start_time) * 1000
        # Endpoint: {method} {path} | status_code: {code} | Total time: {ms}ms
        logger.info(
            f"{request_id} | Endpoint: {request.method} {request.url.path} "
            f"| status_code: {response.status_code} "
            f"| Total time: {duration:.2f}ms"
        )
        response.headers[Headers.REQUEST_ID] = request_id
        return response
