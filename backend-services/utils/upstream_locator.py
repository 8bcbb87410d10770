"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging
from urllib.parse import urlsplit, urlunsplit

from utils.config_util import GatewaySettings
from utils.error_util import NotConfiguredError

logger = logging.getLogger('scaleup.gateway')

BACKEND = 'backend'
ANALYTICS = 'analytics'


def _strip_one_slash(url: str) -> str:
    return url[:-1] if url.endswith('/') else url


def redact_url(url: str) -> str:
    """Drop userinfo, query and fragment so a URL is safe to log or show."""
    try:
        parts = urlsplit(url)
        host = parts.hostname or ''
        if parts.port:
            host = f'{host}:{parts.port}'
        return urlunsplit((parts.scheme, host, parts.path, '', ''))
    except ValueError:
        return '[unparseable-url]'


class UpstreamLocator:

    def __init__(self, settings: GatewaySettings):
        self.settings = settings
        if self.uses_fallback(BACKEND) and settings.scaleup_allow_default_host:
            logger.warning(
                f'No base URL configured; using fallback host '
                f'{redact_url(settings.scaleup_default_base_url)}'
            )

    def _configured(self, service: str) -> str | None:
        s = self.settings
        chain = [s.scaleup_api_base_url, s.public_scaleup_api_base_url]
        if service == ANALYTICS:
            chain.insert(0, s.analytics_base_url)
        for candidate in chain:
            if candidate and candidate.strip():
                return candidate.strip()
        return None

    def uses_fallback(self, service: str = BACKEND) -> bool:
        return self._configured(service) is None

    def base_url(self, service: str = BACKEND) -> str:
        """Resolve the base URL of a logical service.

        Server-side variable first, then the public variant, then the
        hardcoded fallback host. Exactly one trailing slash is stripped.
        """
        configured = self._configured(service)
        if configured:
            return _strip_one_slash(configured)
        if not self.settings.scaleup_allow_default_host:
            raise NotConfiguredError(
                details='Set SCALEUP_API_BASE_URL to your backend service URL.'
            )
        return _strip_one_slash(self.settings.scaleup_default_base_url)
