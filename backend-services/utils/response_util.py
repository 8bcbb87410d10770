from fastapi.responses import JSONResponse, Response
import logging

from models.response_model import ResponseModel

logger = logging.getLogger('scaleup.gateway')

def _normalize_headers(hdrs: dict | None) -> dict | None:
    if not hdrs:
        return hdrs
    out = dict(hdrs)
    rid = out.pop('request_id', None) or out.get('Request-Id')
    if rid and 'X-Request-ID' not in out:
        out['X-Request-ID'] = rid
    return out

def process_response(response):
    """Render a ResponseModel (or dict of its fields) as a Starlette response.

    - error set: JSON error envelope with the error's status
    - body set: upstream bytes relayed verbatim with the upstream content-type
    - response set: gateway-built JSON document
    """
    if isinstance(response, dict):
        response = ResponseModel(**response)
    try:
        headers = _normalize_headers(response.response_headers)
        if response.error is not None:
            return JSONResponse(
                content=response.error.to_content(),
                status_code=response.status_code,
                headers=headers,
            )
        if response.body is not None:
            out = Response(
                content=response.body,
                status_code=response.status_code,
                headers=headers,
            )
            out.headers['content-type'] = response.content_type or 'application/json'
            return out
        return JSONResponse(
            content=response.response if response.response is not None else {},
            status_code=response.status_code,
            headers=headers,
        )
    except Exception as e:
        logger.error(f'An error occurred while processing the response: {type(e).__name__}')
        return JSONResponse(
            content={'error': 'Unable to process response', 'code': 'internal_error'},
            status_code=500,
        )
