import asyncio

import httpx
import pytest

from models.analytics_models import AnalyticsRange
from services.analytics_service import as_number, build_snapshot


def _register_all(upstream):
    upstream.json('GET', '/analytics/overview', {'success': True, 'overview': {'totalImages': 321}})
    upstream.json('GET', '/analytics/views', {
        'success': True,
        'metrics': {
            'total': 1200,
            'growthPercentage': 12.5,
            'series': [{'label': 'Mon', 'value': 100}, {'label': 'Tue', 'value': 'n/a'}],
        },
    })
    upstream.json('GET', '/analytics/images', {
        'success': True,
        'metrics': {'series': [{'label': 'Mon', 'value': 30}]},
    })
    upstream.json('GET', '/analytics/users', {
        'success': True,
        'metrics': {'total': 88, 'series': [{'label': 'Mon', 'value': 8}]},
    })


@pytest.mark.asyncio
async def test_full_snapshot(client, upstream):
    _register_all(upstream)

    r = await client.get('/api/analytics', params={'range': 'week'})

    assert r.status_code == 200
    body = r.json()
    assert body['range'] == 'week'
    assert body['degraded'] == []
    assert body['overview'] == {'views': 1200, 'users': 88, 'images': 321, 'growth': 12.5}
    assert body['series']['views'] == [{'label': 'Mon', 'value': 100}, {'label': 'Tue', 'value': 0}]
    assert body['series']['registrations'] == [{'label': 'Mon', 'value': 8}]
    assert body['series']['generations'] == [{'label': 'Mon', 'value': 30}]

    assert sorted(upstream.paths()) == ['/analytics/images', '/analytics/overview', '/analytics/users', '/analytics/views']
    assert {c.url.params['range'] for c in upstream.calls} == {'weekly'}
    assert all(c.url.host == 'analytics.test' for c in upstream.calls)


@pytest.mark.asyncio
async def test_one_failing_metric_degrades_only_that_metric(client, upstream):
    _register_all(upstream)
    upstream.raw('GET', '/analytics/views', b'<html>oops</html>', 500, 'text/html')

    r = await client.get('/api/analytics')

    assert r.status_code == 200
    body = r.json()
    assert body['degraded'] == ['views']
    assert body['overview']['views'] == 0
    assert body['overview']['growth'] == 0
    assert body['series']['views'] == []
    assert body['overview']['users'] == 88
    assert body['overview']['images'] == 321


@pytest.mark.asyncio
async def test_success_flag_and_json_are_required(client, upstream):
    _register_all(upstream)
    upstream.json('GET', '/analytics/users', {'success': False, 'metrics': {'total': 99}})
    upstream.raw('GET', '/analytics/images', b'{"success": tru', 200, 'application/json')

    r = await client.get('/api/analytics')

    body = r.json()
    assert body['degraded'] == ['images', 'users']
    assert body['overview']['users'] == 0
    assert body['series']['generations'] == []


@pytest.mark.asyncio
async def test_all_metrics_failing_still_returns_zero_snapshot(client, upstream):
    def refuse(req):
        raise httpx.ConnectError('refused', request=req)

    for path in ('overview', 'views', 'images', 'users'):
        upstream.add('GET', f'/analytics/{path}', refuse)

    r = await client.get('/api/analytics', params={'range': 'month'})

    assert r.status_code == 200
    body = r.json()
    assert body['degraded'] == ['images', 'overview', 'users', 'views']
    assert body['overview'] == {'views': 0, 'users': 0, 'images': 0, 'growth': 0}


@pytest.mark.asyncio
async def test_metric_calls_run_concurrently(client, upstream):
    in_flight = {'now': 0, 'peak': 0}

    async def slow(req):
        in_flight['now'] += 1
        in_flight['peak'] = max(in_flight['peak'], in_flight['now'])
        await asyncio.sleep(0.05)
        in_flight['now'] -= 1
        return httpx.Response(200, json={'success': True})

    for path in ('overview', 'views', 'images', 'users'):
        upstream.add('GET', f'/analytics/{path}', slow)

    r = await client.get('/api/analytics')

    assert r.status_code == 200
    assert in_flight['peak'] == 4


@pytest.mark.asyncio
async def test_invalid_range_is_400(client, upstream):
    r = await client.get('/api/analytics', params={'range': 'year'})
    assert r.status_code == 400
    assert r.json()['error'] == 'Invalid analytics range'
    assert upstream.calls == []


def test_as_number_rejects_non_numeric_values():
    assert as_number(5) == 5
    assert as_number(2.5) == 2.5
    assert as_number('5') == 0
    assert as_number(None) == 0
    assert as_number(True) == 0
    assert as_number(float('nan')) == 0


def test_build_snapshot_with_nothing():
    snap = build_snapshot(AnalyticsRange.DAY, {})
    assert snap.degraded == ['images', 'overview', 'users', 'views']
    assert snap.series.views == []


def test_series_are_read_from_metrics_block():
    views = {
        'success': True,
        'series': [{'label': 'Sun', 'value': 99}],
        'metrics': {'total': 10, 'series': [{'label': 'Mon', 'value': 3}]},
    }
    snap = build_snapshot(AnalyticsRange.DAY, {'views': views})
    assert [p.model_dump() for p in snap.series.views] == [{'label': 'Mon', 'value': 3}]
    assert snap.overview.views == 10
