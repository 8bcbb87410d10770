import httpx
import pytest

PNG = b'\x89PNG\r\n\x1a\n' + b'\x01' * 32


@pytest.mark.asyncio
async def test_image_is_relayed_as_download(client, upstream):
    upstream.raw('GET', '/renders/a.png', PNG, 200, 'image/png')

    r = await client.get('/api/proxy-image', params={'url': 'https://images.test/renders/a.png', 'filename': 'avatar.png'})

    assert r.status_code == 200
    assert r.content == PNG
    assert r.headers['content-type'] == 'image/png'
    assert r.headers['content-disposition'] == 'attachment; filename="avatar.png"'


@pytest.mark.asyncio
async def test_defaults_and_inline_disposition(client, upstream):
    upstream.raw('GET', '/a.png', PNG, 200, None)

    r = await client.get('/api/proxy-image', params={'url': 'https://eu.cdn.test/a.png', 'disposition': 'INLINE'})

    assert r.status_code == 200
    assert r.headers['content-type'] == 'application/octet-stream'
    assert r.headers['content-disposition'] == 'inline; filename="image.png"'


@pytest.mark.asyncio
async def test_filename_is_sanitised(client, upstream):
    upstream.raw('GET', '/a.png', PNG, 200, 'image/png')

    r = await client.get(
        '/api/proxy-image',
        params={'url': 'https://images.test/a.png', 'filename': '../../etc/"evil"\r\nX-Injected: 1.png'},
    )

    disposition = r.headers['content-disposition']
    assert '\r' not in disposition and '\n' not in disposition
    assert '..' not in disposition
    assert 'x-injected' not in {k.lower() for k in r.headers}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    'url, error',
    [
        (None, 'URL is required'),
        ('https://evil.example.com/a.png', 'URL host is not allowed'),
        ('ftp://images.test/a.png', 'URL host is not allowed'),
        ('https://user:pw@images.test/a.png', 'URL host is not allowed'),
        ('/relative/a.png', 'URL host is not allowed'),
    ],
)
async def test_disallowed_urls_never_fetched(url, error, client, upstream):
    params = {'url': url} if url else {}
    r = await client.get('/api/proxy-image', params=params)
    assert r.status_code == 400
    assert r.json()['error'] == error
    assert upstream.calls == []


@pytest.mark.asyncio
async def test_upstream_failure_keeps_status(client, upstream):
    upstream.raw('GET', '/missing.png', b'not found', 404, 'text/plain')

    r = await client.get('/api/proxy-image', params={'url': 'https://images.test/missing.png'})

    assert r.status_code == 404
    body = r.json()
    assert body['error'] == 'Failed to fetch image'
    assert body['code'] == 'upstream_error'
    assert 'not found' not in body.get('details', '')


@pytest.mark.asyncio
async def test_unreachable_image_host(client, upstream):
    def refuse(req):
        raise httpx.ConnectError('refused', request=req)

    upstream.add('GET', '/a.png', refuse)
    r = await client.get('/api/proxy-image', params={'url': 'https://images.test/a.png?sig=secret'})

    assert r.status_code == 502
    assert 'secret' not in r.text
