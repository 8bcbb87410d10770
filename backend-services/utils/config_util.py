"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

from functools import lru_cache

import httpx
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.constants import Defaults


class GatewaySettings(BaseSettings):
    """Environment-derived gateway configuration.

    Built once per application and handed to GatewayService at construction,
    so tests can inject fake upstream hosts without touching os.environ.
    """

    model_config = SettingsConfigDict(extra='ignore')

    scaleup_api_base_url: str | None = None
    public_scaleup_api_base_url: str | None = None
    analytics_base_url: str | None = None
    scaleup_default_base_url: str = Defaults.FALLBACK_BASE_URL
    scaleup_allow_default_host: bool = True
    scaleup_upstream_prefix: str = Defaults.UPSTREAM_PREFIX

    generate_timeout_seconds: float = Defaults.GENERATE_TIMEOUT_SECONDS
    upstream_timeout_seconds: float = Defaults.UPSTREAM_TIMEOUT_SECONDS
    http_connect_timeout: float = Defaults.CONNECT_TIMEOUT_SECONDS

    max_photo_bytes: int = Defaults.MAX_PHOTO_BYTES
    max_body_size_bytes: int = Defaults.MAX_BODY_SIZE_BYTES

    async_generation_remap: bool = True
    image_proxy_allowed_hosts: str = ','.join(Defaults.IMAGE_PROXY_ALLOWED_HOSTS)

    http_max_connections: int = 100
    http_max_keepalive: int = 50
    http_keepalive_expiry: float = 30.0

    log_level: str = 'INFO'
    log_format: str = 'plain'
    logs_dir: str | None = None

    @property
    def allowed_image_hosts(self) -> list[str]:
        return [h.strip().lower() for h in self.image_proxy_allowed_hosts.split(',') if h.strip()]

    def build_timeout(self, total: float) -> httpx.Timeout:
        # Per-phase limits never exceed the operation deadline
        connect = min(self.http_connect_timeout, total)
        return httpx.Timeout(total, connect=connect)

    def build_limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.http_max_connections,
            max_keepalive_connections=self.http_max_keepalive,
            keepalive_expiry=self.http_keepalive_expiry,
        )


@lru_cache
def get_settings() -> GatewaySettings:
    return GatewaySettings()
