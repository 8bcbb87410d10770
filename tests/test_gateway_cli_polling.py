import requests

import gateway_cli


def test_returns_first_image_url_and_stops_polling(fake_session, fake_response):
    sleeps = []
    sess = fake_session([
        fake_response(200, {'status': 'processing'}),
        fake_response(200, {'image_url': 'https://images.test/c.png', 'final_image_url': 'https://images.test/final.png'}),
        fake_response(200, {'final_image_url': 'https://images.test/never.png'}),
    ])

    found = gateway_cli.wait_for_image(sess, '9048170077', attempts=5, delay=2.0, sleep=sleeps.append)

    assert found == 'https://images.test/final.png'
    assert len(sess.urls) == 2
    assert sleeps == [2.0]
    assert sess.urls[0].endswith('/api/user/9048170077')


def test_key_precedence():
    body = {'image_url': 'c', 'generated_image_url': 'b'}
    assert gateway_cli.extract_image_url(body) == 'b'
    assert gateway_cli.extract_image_url({'user': {'generated_image_url': 'nested'}}) == 'nested'
    assert gateway_cli.extract_image_url({'final_image_url': '   '}) == ''


def test_exhaustion_returns_empty_after_fixed_attempts(fake_session, fake_response):
    sleeps = []
    sess = fake_session([fake_response(200, {'status': 'processing'}) for _ in range(30)])

    found = gateway_cli.wait_for_image(sess, 'abc', sleep=sleeps.append)

    assert found == ''
    assert len(sess.urls) == 30
    assert sleeps == [2.0] * 29


def test_parse_and_transport_errors_spend_an_attempt(fake_session, fake_response):
    sleeps = []
    sess = fake_session([
        fake_response(200, text='<html>not json'),
        requests.ConnectionError('down'),
        fake_response(500, {'final_image_url': 'https://images.test/ignored.png'}),
        fake_response(200, {'generated_image_url': 'https://images.test/ok.png'}),
    ])

    found = gateway_cli.wait_for_image(sess, 'abc', attempts=4, delay=0.5, sleep=sleeps.append)

    assert found == 'https://images.test/ok.png'
    assert len(sess.urls) == 4
    assert sleeps == [0.5, 0.5, 0.5]


def test_wait_command_exit_codes(monkeypatch, fake_session, fake_response, capsys):
    monkeypatch.setenv('BASE_URL', 'http://gw.test')
    sess = fake_session([fake_response(200, {'status': 'processing'})] * 3)
    monkeypatch.setattr(gateway_cli.requests, 'Session', lambda: _Ctx(sess))
    monkeypatch.setattr(gateway_cli.time, 'sleep', lambda s: None)

    assert gateway_cli.main(['--base-url', 'http://gw.test', 'wait', 'abc', '--attempts', '3', '--delay', '0']) == 1

    sess = fake_session([fake_response(200, {'final_image_url': 'https://images.test/x.png'})])
    monkeypatch.setattr(gateway_cli.requests, 'Session', lambda: _Ctx(sess))
    assert gateway_cli.main(['--base-url', 'http://gw.test', 'wait', 'abc']) == 0
    assert 'https://images.test/x.png' in capsys.readouterr().out
    assert sess.urls == ['http://gw.test/api/user/abc']


class _Ctx:
    def __init__(self, sess):
        self.sess = sess

    def __enter__(self):
        return self.sess

    def __exit__(self, *exc):
        return False
