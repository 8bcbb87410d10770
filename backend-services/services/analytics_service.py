"""
Analytics aggregation over the upstream metric endpoints.

Four independent calls (overview, views, images, users) are issued in
parallel. A metric counts only when its call returned 2xx, its body parsed
as JSON and the body carries a truthy ``success`` flag; anything else keeps
that metric's zero/empty default and is listed under ``degraded``.
"""

import asyncio
import logging
import math
from typing import Any

from models.analytics_models import (
    AnalyticsRange,
    AnalyticsSnapshot,
    OverviewMetrics,
    SeriesPoint,
    SeriesSet,
)
from models.proxy_request_model import Operation, ProxyRequest
from models.response_model import ResponseModel
from models.upstream_model import UpstreamTarget
from utils.constants import Messages
from utils.error_util import ClientDisconnected, GatewayError, RequestValidationFailed, error_response
from utils.http_client import Receive, call_upstream, cancel_on_disconnect
from utils.upstream_locator import ANALYTICS

logger = logging.getLogger('scaleup.gateway')

METRIC_PATHS = {
    'overview': 'analytics/overview',
    'views': 'analytics/views',
    'images': 'analytics/images',
    'users': 'analytics/users',
}


def as_number(value: Any) -> float:
    """Coerce an upstream metric value; non-numeric values count as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _dig(body: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(body, dict):
            return None
        body = body.get(key)
    return body


def to_series(points: Any) -> list[SeriesPoint]:
    if not isinstance(points, list):
        return []
    series = []
    for point in points:
        if not isinstance(point, dict):
            continue
        label = point.get('label')
        series.append(SeriesPoint(label='' if label is None else str(label), value=as_number(point.get('value'))))
    return series


def build_snapshot(range_: AnalyticsRange, metrics: dict[str, Any]) -> AnalyticsSnapshot:
    """Assemble a snapshot from the metric bodies that came back usable."""
    overview = metrics.get('overview')
    views = metrics.get('views')
    images = metrics.get('images')
    users = metrics.get('users')
    return AnalyticsSnapshot(
        range=range_,
        overview=OverviewMetrics(
            views=as_number(_dig(views, 'metrics', 'total')),
            users=as_number(_dig(users, 'metrics', 'total')),
            images=as_number(_dig(overview, 'overview', 'totalImages')),
            growth=as_number(_dig(views, 'metrics', 'growthPercentage')),
        ),
        series=SeriesSet(
            views=to_series(_dig(views, 'metrics', 'series')),
            registrations=to_series(_dig(users, 'metrics', 'series')),
            generations=to_series(_dig(images, 'metrics', 'series')),
        ),
        degraded=sorted(name for name in METRIC_PATHS if metrics.get(name) is None),
    )


class AnalyticsService:

    def __init__(self, gateway):
        self.gateway = gateway

    async def _fetch_metric(
        self,
        name: str,
        base_url: str,
        range_: AnalyticsRange,
        request_id: str,
    ) -> dict | None:
        target = UpstreamTarget(base_url=base_url, path=METRIC_PATHS[name])
        try:
            result = await call_upstream(
                self.gateway.get_http_client(),
                'GET',
                target,
                timeout=self.gateway.timeout_for(Operation.ANALYTICS),
                connect_timeout=self.gateway.settings.http_connect_timeout,
                params={'range': range_.upstream_value},
                headers={'X-Request-ID': request_id},
                request_id=request_id,
            )
        except GatewayError as e:
            logger.warning(f'{request_id} | Analytics metric {name} unavailable: {e.code}')
            return None
        if not result.ok:
            logger.warning(f'{request_id} | Analytics metric {name} unavailable: status {result.status_code}')
            return None
        if not result.has_valid_json():
            logger.warning(f'{request_id} | Analytics metric {name} unavailable: invalid JSON')
            return None
        body = result.parsed_json()
        if not isinstance(body, dict) or not body.get('success'):
            logger.warning(f'{request_id} | Analytics metric {name} unavailable: success flag not set')
            return None
        return body

    async def snapshot(self, request: ProxyRequest, receive: Receive | None = None) -> ResponseModel:
        request_id = request.request_id
        logger.info(f'{request_id} | Gateway {request.operation.value} started')
        try:
            raw_range = request.fields.get('range') or AnalyticsRange.DAY.value
            try:
                range_ = AnalyticsRange(str(raw_range).strip().lower())
            except ValueError:
                raise RequestValidationFailed(
                    Messages.INVALID_RANGE,
                    details=f'range must be one of day, week, month. Received: {raw_range}',
                    field='range',
                )
            base_url = self.gateway.locator.base_url(ANALYTICS)
            names = list(METRIC_PATHS)
            # One disconnect watcher for the whole fan-out
            bodies = await cancel_on_disconnect(
                asyncio.gather(*(self._fetch_metric(name, base_url, range_, request_id) for name in names)),
                receive,
            )
            snapshot = build_snapshot(range_, dict(zip(names, bodies)))
            if snapshot.degraded:
                logger.warning(f'{request_id} | Analytics degraded: {", ".join(snapshot.degraded)}')
            return ResponseModel(
                status_code=200,
                response_headers={'X-Request-ID': request_id},
                response=snapshot.model_dump(mode='json'),
            )
        except ClientDisconnected:
            raise
        except Exception as e:
            return error_response(request_id, e)
