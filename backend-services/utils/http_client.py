"""
Outbound HTTP helper for upstream calls.

One attempt per call, no retries. The operation deadline is enforced by
cancelling the in-flight request (asyncio.wait_for), and an optional ASGI
``receive`` channel lets a client disconnect cancel it as well.

Usage:
    result = await call_upstream(
        client, 'POST', target,
        timeout=30.0,
        json=payload,
        receive=request.receive,
    )
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from models.upstream_model import UpstreamResult, UpstreamTarget
from utils.constants import Defaults
from utils.error_util import ClientDisconnected, UpstreamTimeoutError, UpstreamUnreachableError
from utils.upstream_locator import redact_url

logger = logging.getLogger('scaleup.gateway')

Receive = Callable[[], Awaitable[dict]]


def _build_timeout(total: float, connect: Optional[float] = None) -> httpx.Timeout:
    connect = Defaults.CONNECT_TIMEOUT_SECONDS if connect is None else connect
    return httpx.Timeout(total, connect=min(connect, total))


async def _wait_for_disconnect(receive: Receive) -> None:
    while True:
        message = await receive()
        if message.get('type') == 'http.disconnect':
            return


async def cancel_on_disconnect(call: Awaitable[Any], receive: Optional[Receive] = None) -> Any:
    """Await ``call`` but cancel it if the inbound client disconnects first."""
    if receive is None:
        return await call
    upstream = asyncio.ensure_future(call)
    watcher = asyncio.ensure_future(_wait_for_disconnect(receive))
    try:
        done, _ = await asyncio.wait({upstream, watcher}, return_when=asyncio.FIRST_COMPLETED)
        if upstream in done:
            return upstream.result()
        if watcher.exception() is not None:
            # Broken receive channel: keep serving the call
            return await upstream
        upstream.cancel()
        await asyncio.gather(upstream, return_exceptions=True)
        raise ClientDisconnected()
    finally:
        for task in (upstream, watcher):
            if not task.done():
                task.cancel()


async def call_upstream(
    client: httpx.AsyncClient,
    method: str,
    target: UpstreamTarget,
    *,
    timeout: float,
    connect_timeout: Optional[float] = None,
    default_content_type: str = Defaults.CONTENT_TYPE,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None,
    files: Any = None,
    json: Any = None,
    receive: Optional[Receive] = None,
    request_id: Optional[str] = None,
) -> UpstreamResult:
    """Perform one upstream call and capture status, content-type and raw bytes.

    - Deadline exceeded (ours or httpx's) -> UpstreamTimeoutError
    - Connect/DNS/network/protocol failure -> UpstreamUnreachableError
    - Client disconnect -> ClientDisconnected, upstream call cancelled
    """
    url = target.url
    safe_url = redact_url(url)
    request_kwargs: Dict[str, Any] = {
        'headers': headers,
        'params': params,
        'timeout': _build_timeout(timeout, connect_timeout),
    }
    if json is not None:
        request_kwargs['json'] = json
    if data is not None:
        request_kwargs['data'] = data
    if files is not None:
        request_kwargs['files'] = files

    logger.info(f'{request_id} | Upstream {method.upper()} {safe_url} (timeout {timeout:g}s)')
    try:
        response = await cancel_on_disconnect(
            asyncio.wait_for(client.request(method.upper(), url, **request_kwargs), timeout),
            receive,
        )
    except ClientDisconnected:
        logger.info(f'{request_id} | Client disconnected, cancelled upstream call to {safe_url}')
        raise
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.error(f'{request_id} | Upstream timeout after {timeout:g}s: {safe_url}')
        raise UpstreamTimeoutError(safe_url, timeout)
    except httpx.TransportError as e:
        logger.error(f'{request_id} | Upstream unreachable: {safe_url} ({type(e).__name__})')
        raise UpstreamUnreachableError(safe_url)

    content_type = response.headers.get('content-type') or default_content_type
    result = UpstreamResult(
        status_code=response.status_code,
        content_type=content_type,
        body=response.content,
    )
    logger.info(f'{request_id} | Upstream status {result.status_code} ({content_type}, {len(result.body)} bytes)')
    return result
