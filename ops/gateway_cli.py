import argparse
import json
import mimetypes
import os
import sys
import time
from urllib.parse import urljoin

import requests

POLL_ATTEMPTS = 30
POLL_DELAY_SECONDS = 2.0
IMAGE_URL_KEYS = ('final_image_url', 'generated_image_url', 'image_url')
NESTED_KEYS = ('data', 'result', 'user')

def base_url() -> str:
    return os.getenv('BASE_URL', 'http://localhost:8000').rstrip('/') + '/'

def _headers(headers: dict | None = None) -> dict:
    out = {'Accept': 'application/json'}
    if headers:
        out.update(headers)
    return out

def _print_response(r: requests.Response) -> None:
    print(f'HTTP {r.status_code}')
    try:
        print(json.dumps(r.json(), indent=2))
    except ValueError:
        print(r.text)

def extract_image_url(payload) -> str:
    """First image URL in a lookup body, checked top level first then nested objects."""
    if not isinstance(payload, dict):
        return ''
    for key in IMAGE_URL_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    for nested in NESTED_KEYS:
        found = extract_image_url(payload.get(nested))
        if found:
            return found
    return ''

def wait_for_image(
    sess: requests.Session,
    user_id: str,
    attempts: int = POLL_ATTEMPTS,
    delay: float = POLL_DELAY_SECONDS,
    sleep=None,
) -> str:
    """Poll the user lookup until an image URL shows up.

    Bounded: at most ``attempts`` lookups with a fixed ``delay`` between
    them. Transport and parse errors spend an attempt. Returns '' when the
    attempts run out.
    """
    sleep = sleep or time.sleep
    url = urljoin(base_url(), f'api/user/{user_id}')
    for attempt in range(1, attempts + 1):
        try:
            r = sess.get(url, headers=_headers())
            body = r.json() if r.text.strip() else {}
            if r.ok:
                found = extract_image_url(body)
                if found:
                    return found
        except (requests.RequestException, ValueError) as e:
            print(f'Attempt {attempt}/{attempts} failed: {type(e).__name__}', file=sys.stderr)
        if attempt < attempts:
            sleep(delay)
    return ''

def do_generate(sess: requests.Session, args) -> int:
    url = urljoin(base_url(), 'api/generate')
    fields = {
        'name': args.name,
        'email': args.email,
        'phone_no': args.phone,
        'district': args.district,
        'category': args.category,
        'organization': args.organization,
        'prompt_type': args.prompt_type,
    }
    ctype = mimetypes.guess_type(args.photo)[0] or 'application/octet-stream'
    with open(args.photo, 'rb') as fh:
        files = {'photo': (os.path.basename(args.photo), fh, ctype)}
        r = sess.post(url, data=fields, files=files, headers=_headers())
    _print_response(r)
    if r.status_code == 202 and args.wait:
        found = wait_for_image(sess, args.user_id or args.phone, args.attempts, args.delay)
        if not found:
            print('Image not ready after polling', file=sys.stderr)
            return 1
        print(found)
        return 0
    return 0 if r.ok else 1

def do_lookup(sess: requests.Session, args) -> int:
    r = sess.get(urljoin(base_url(), f'api/user/{args.identifier}'), headers=_headers())
    _print_response(r)
    return 0 if r.ok else 1

def do_wait(sess: requests.Session, args) -> int:
    found = wait_for_image(sess, args.identifier, args.attempts, args.delay)
    if not found:
        print('Image not ready after polling', file=sys.stderr)
        return 1
    print(found)
    return 0

def do_otp_generate(sess: requests.Session, args) -> int:
    r = sess.post(urljoin(base_url(), 'api/otp/generate'), json={'phoneNumber': args.phone}, headers=_headers())
    _print_response(r)
    return 0 if r.ok else 1

def do_otp_verify(sess: requests.Session, args) -> int:
    payload = {'phoneNumber': args.phone, 'otp': args.otp}
    r = sess.post(urljoin(base_url(), 'api/otp/verify'), json=payload, headers=_headers())
    _print_response(r)
    return 0 if r.ok else 1

def do_register(sess: requests.Session, args) -> int:
    payload = {
        'name': args.name,
        'email': args.email,
        'phone_no': args.phone,
        'district': args.district,
        'category': args.category,
        'organization': args.organization,
    }
    r = sess.post(urljoin(base_url(), 'api/register'), json=payload, headers=_headers())
    _print_response(r)
    return 0 if r.ok else 1

def do_analytics(sess: requests.Session, args) -> int:
    r = sess.get(urljoin(base_url(), 'api/analytics'), params={'range': args.range}, headers=_headers())
    _print_response(r)
    return 0 if r.ok else 1

def _add_poll_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--attempts', type=int, default=POLL_ATTEMPTS, help='Maximum lookups while polling')
    parser.add_argument('--delay', type=float, default=POLL_DELAY_SECONDS, help='Seconds between lookups')

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description='Scaleup gateway CLI')
    p.add_argument('--base-url', default=os.getenv('BASE_URL'), help='Override base URL (default env BASE_URL or http://localhost:8000)')
    sub = p.add_subparsers(dest='cmd', required=True)

    gen = sub.add_parser('generate', help='Submit a photo for avatar generation')
    gen.add_argument('--name', required=True)
    gen.add_argument('--email', required=True)
    gen.add_argument('--phone', required=True)
    gen.add_argument('--district', required=True)
    gen.add_argument('--category', required=True)
    gen.add_argument('--organization', required=True)
    gen.add_argument('--prompt-type', default='default')
    gen.add_argument('--photo', required=True, help='Path to a JPEG or PNG file')
    gen.add_argument('--wait', action='store_true', help='Poll for the image when generation is still processing')
    gen.add_argument('--user-id', help='Identifier to poll (defaults to --phone)')
    _add_poll_args(gen)

    lk = sub.add_parser('lookup', help='Look up a user by UUID or phone number')
    lk.add_argument('identifier')

    wt = sub.add_parser('wait', help='Poll a user lookup until the generated image is available')
    wt.add_argument('identifier')
    _add_poll_args(wt)

    og = sub.add_parser('otp-generate', help='Send an OTP')
    og.add_argument('phone')

    ov = sub.add_parser('otp-verify', help='Verify an OTP')
    ov.add_argument('phone')
    ov.add_argument('otp')

    rg = sub.add_parser('register', help='Register a user')
    rg.add_argument('--name', required=True)
    rg.add_argument('--email', required=True)
    rg.add_argument('--phone', required=True)
    rg.add_argument('--district', required=True)
    rg.add_argument('--category', required=True)
    rg.add_argument('--organization', required=True)

    an = sub.add_parser('analytics', help='Show the analytics snapshot')
    an.add_argument('--range', choices=['day', 'week', 'month'], default='day')
    return p

COMMANDS = {
    'generate': do_generate,
    'lookup': do_lookup,
    'wait': do_wait,
    'otp-generate': do_otp_generate,
    'otp-verify': do_otp_verify,
    'register': do_register,
    'analytics': do_analytics,
}

def main(argv=None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    if args.base_url:
        os.environ['BASE_URL'] = args.base_url

    handler = COMMANDS.get(args.cmd)
    if handler is None:
        p.print_help()
        return 2
    with requests.Session() as sess:
        return handler(sess, args)

if __name__ == '__main__':
    sys.exit(main())
