# External imports
import re

# Internal imports
from utils.constants import Defaults

DISPOSITIONS = ('attachment', 'inline')

def sanitize_headers(value: str):
    """Sanitize header values to prevent injection attacks.

    Removes:
    - Newline characters (CRLF injection)
    - HTML tags (XSS prevention)
    - Null bytes
    """
    value = value.replace('\n', '').replace('\r', '').replace('\0', '')
    value = re.sub(r'<[^>]+>', '', value)
    if len(value) > 8192:
        value = value[:8192] + '...[TRUNCATED]'
    return value

def sanitize_filename(filename: str | None, default: str = Defaults.IMAGE_FILENAME) -> str:
    """Reduce a client supplied file name to a safe Content-Disposition token."""
    name = sanitize_headers(filename or '')
    name = name.replace('\\', '/').rsplit('/', 1)[-1]
    name = re.sub(r'[^A-Za-z0-9._\- ]', '_', name).strip(' .')
    return name[:128] or default

def content_disposition(disposition: str | None, filename: str | None) -> str:
    kind = (disposition or '').strip().lower()
    if kind not in DISPOSITIONS:
        kind = Defaults.IMAGE_DISPOSITION
    return f'{kind}; filename="{sanitize_filename(filename)}"'
