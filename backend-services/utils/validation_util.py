"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

# External imports
from typing import Any, Iterable, Mapping
from urllib.parse import urlsplit
import logging
import re

# Internal imports
from models.proxy_request_model import Attachment, ProxyRequest
from utils.constants import Defaults, ImageTypes, Messages, RequiredFields
from utils.error_util import RequestValidationFailed

logger = logging.getLogger('scaleup.gateway')

UUID_PATTERN = re.compile(
    r'[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}',
    re.IGNORECASE,
)
PHONE_PATTERN = re.compile(r'\+?[0-9]{10,15}')


def is_valid_uuid(value: str) -> bool:
    return UUID_PATTERN.fullmatch(value or '') is not None


def is_valid_phone(value: str) -> bool:
    return PHONE_PATTERN.fullmatch(value or '') is not None


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set, bytes)):
        return len(value) == 0
    return False


class RequestValidator:
    """Per-operation checks that run before any upstream call is made."""

    def __init__(
        self,
        max_photo_bytes: int = Defaults.MAX_PHOTO_BYTES,
        allowed_image_types: Iterable[str] = ImageTypes.ALLOWED,
        allowed_image_hosts: Iterable[str] = Defaults.IMAGE_PROXY_ALLOWED_HOSTS,
    ):
        self.max_photo_bytes = max_photo_bytes
        self.allowed_image_types = tuple(t.lower() for t in allowed_image_types)
        self.allowed_image_hosts = tuple(h.lower() for h in allowed_image_hosts)

    def require_fields(self, payload: Mapping[str, Any] | None, required: Iterable[str]) -> None:
        """Fail on the first missing field, naming it."""
        payload = payload or {}
        for field in required:
            if is_blank(payload.get(field)):
                raise RequestValidationFailed(f'{field} is required', field=field)

    def validate_attachment(self, attachment: Attachment) -> None:
        ctype = (attachment.content_type or '').split(';', 1)[0].strip().lower()
        if ctype not in self.allowed_image_types:
            raise RequestValidationFailed(
                Messages.INVALID_IMAGE_FORMAT,
                details=f'Only JPEG and PNG formats are allowed. Received: {attachment.content_type or "unknown"}',
                field=attachment.field_name,
            )
        if attachment.size > self.max_photo_bytes:
            limit_mib = self.max_photo_bytes / (1024 * 1024)
            raise RequestValidationFailed(
                Messages.IMAGE_TOO_LARGE,
                details=f'Maximum file size is {limit_mib:g}MB. Current size: {attachment.size_mib:.2f}MB',
                field=attachment.field_name,
            )

    def validate_generate(self, request: ProxyRequest) -> Attachment:
        present = {**request.fields, **request.attachments}
        self.require_fields(present, RequiredFields.GENERATE)
        photo = request.attachments.get('photo')
        if photo is None:
            # Sent as a plain text part rather than a file
            raise RequestValidationFailed(Messages.PHOTO_REQUIRED, field='photo')
        self.validate_attachment(photo)
        return photo

    def validate_identifier(self, identifier: str) -> str:
        if not (is_valid_uuid(identifier) or is_valid_phone(identifier)):
            raise RequestValidationFailed(Messages.INVALID_IDENTIFIER, field='id')
        return identifier

    def validate_otp_generate(self, request: ProxyRequest) -> None:
        self.require_fields(request.fields, RequiredFields.OTP_GENERATE)

    def validate_otp_verify(self, request: ProxyRequest) -> None:
        self.require_fields(request.fields, RequiredFields.OTP_VERIFY)

    def validate_register(self, request: ProxyRequest) -> None:
        self.require_fields(request.fields, RequiredFields.REGISTER)

    def _host_allowed(self, host: str) -> bool:
        host = host.lower()
        for allowed in self.allowed_image_hosts:
            if allowed.startswith('.'):
                if host.endswith(allowed) or host == allowed[1:]:
                    return True
            elif host == allowed:
                return True
        return False

    def validate_image_url(self, url: str | None) -> str:
        if is_blank(url):
            raise RequestValidationFailed(Messages.URL_REQUIRED, field='url')
        try:
            parts = urlsplit(url.strip())
            host = parts.hostname or ''
        except ValueError:
            raise RequestValidationFailed(Messages.URL_NOT_ALLOWED, field='url')
        if parts.scheme not in ('http', 'https') or not host:
            raise RequestValidationFailed(
                Messages.URL_NOT_ALLOWED, details='Only absolute http(s) URLs are accepted', field='url'
            )
        if parts.username or parts.password:
            raise RequestValidationFailed(Messages.URL_NOT_ALLOWED, details='Credentials in URL are not accepted', field='url')
        if not self._host_allowed(host):
            raise RequestValidationFailed(Messages.URL_NOT_ALLOWED, details=f'Host {host} is not on the allow-list', field='url')
        return url.strip()
