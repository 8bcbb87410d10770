"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import json
import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler

from utils.config_util import GatewaySettings

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'time': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'name': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_type'] = record.exc_info[0].__name__ if record.exc_info[0] else None
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            return f'{payload}'


class RedactFilter(logging.Filter):
    """Logging redaction filter for secrets and personal data.

    Redacts:
    - Authorization / API key headers
    - Access, refresh and bearer tokens (including bare JWTs)
    - Passwords and secrets
    - OTP codes
    - Credentials embedded in URLs
    """

    PATTERNS = [
        re.compile(r'(?i)(authorization\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n]+)'),
        re.compile(r'(?i)(x-api-key\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n]+)'),
        re.compile(r'(?i)(api[_-]?key\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s,}]+)'),
        re.compile(r'(?i)(access[_-]?token\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s,}]+)'),
        re.compile(r'(?i)(refresh[_-]?token\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s,}]+)'),
        re.compile(r'(?i)(token\s*["\']?\s*[:=]\s*["\']?)([a-zA-Z0-9_\-\.]{20,})'),
        re.compile(r'(?i)(password\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n,}]+)'),
        re.compile(r'(?i)(secret\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s,}]+)'),
        re.compile(r'(?i)(\botp\s*["\']?\s*[:=]\s*["\']?)([0-9A-Za-z]+)'),
        re.compile(r'(?i)([a-z][a-z0-9+.\-]*://)([^/\s:@]+:[^/\s@]*)(?=@)'),
        re.compile(r'\b(eyJ[a-zA-Z0-9_\-]+\.eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+)\b'),
    ]

    @classmethod
    def redact(cls, text: str) -> str:
        for pat in cls.PATTERNS:
            if pat.groups >= 2:
                text = pat.sub(lambda m: m.group(1) + '[REDACTED]', text)
            else:
                text = pat.sub('[REDACTED]', text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            return True
        red = self.redact(msg)
        if red != msg:
            record.msg = red
            record.args = ()
        return True


_file_handler: RotatingFileHandler | None = None


def _formatter(settings: GatewaySettings) -> logging.Formatter:
    if settings.log_format.lower() == 'json':
        return JSONFormatter()
    return logging.Formatter(PLAIN_FORMAT)


def _get_file_handler(settings: GatewaySettings) -> RotatingFileHandler | None:
    global _file_handler
    if not settings.logs_dir:
        return None
    if _file_handler is None:
        try:
            os.makedirs(settings.logs_dir, exist_ok=True)
            _file_handler = RotatingFileHandler(
                filename=os.path.join(settings.logs_dir, 'scaleup.log'),
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8',
            )
        except OSError as e:
            logging.getLogger('scaleup.gateway').warning(f'File logging disabled ({e}); using console logging only')
            return None
        _file_handler.addFilter(RedactFilter())
    _file_handler.setFormatter(_formatter(settings))
    return _file_handler


def configure_logger(logger_name: str, settings: GatewaySettings) -> logging.Logger:
    logger = logging.getLogger(logger_name)
    level = logging.getLevelName(settings.log_level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(_formatter(settings))
    console.addFilter(RedactFilter())
    logger.addHandler(console)

    file_handler = _get_file_handler(settings)
    if file_handler is not None:
        logger.addHandler(file_handler)
    return logger
