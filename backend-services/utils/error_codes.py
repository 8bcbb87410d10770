"""
Centralized Error Code Registry

Single source of truth for the failure categories the gateway can surface.
Every error envelope returned to a caller carries one of these codes.

Usage:
    from utils.error_codes import ErrorCode

    raise GatewayError(
        ErrorCode.UPSTREAM_TIMEOUT,
        'Backend timeout',
        details='Image generation is taking longer than expected.',
    )
"""


class ErrorCode:
    """
    Failure categories.

    Naming Convention:
        - Value is the lower snake-case category sent on the wire as ``code``
        - Client-caused failures are always 4xx
        - Upstream failures keep a distinct status so callers can tell a
          gateway deadline from an upstream one
    """

    # ========================================================================
    # Client-caused (4xx)
    # ========================================================================
    VALIDATION_ERROR = 'validation_error'  # Missing field, bad format, bad attachment

    # ========================================================================
    # Gateway configuration (5xx)
    # ========================================================================
    NOT_CONFIGURED = 'not_configured'  # No base URL and fallback host disabled

    # ========================================================================
    # Upstream transport (5xx)
    # ========================================================================
    UPSTREAM_UNREACHABLE = 'upstream_unreachable'  # DNS/connect/network failure
    UPSTREAM_TIMEOUT = 'upstream_timeout'  # Per-operation deadline exceeded

    # ========================================================================
    # Upstream outcome
    # ========================================================================
    UPSTREAM_PROCESSING = 'upstream_processing'  # Generation continues asynchronously
    UPSTREAM_ERROR = 'upstream_error'  # Upstream's own non-2xx, status preserved
    INTEGRITY_ERROR = 'integrity_error'  # Declared JSON body empty or malformed

    # ========================================================================
    # Gateway internal
    # ========================================================================
    INTERNAL_ERROR = 'internal_error'  # Unhandled exception inside the gateway


DEFAULT_STATUS = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_CONFIGURED: 501,
    ErrorCode.UPSTREAM_UNREACHABLE: 502,
    ErrorCode.UPSTREAM_TIMEOUT: 504,
    ErrorCode.UPSTREAM_PROCESSING: 202,
    ErrorCode.UPSTREAM_ERROR: 502,
    ErrorCode.INTEGRITY_ERROR: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}


def default_status(code: str) -> int:
    return DEFAULT_STATUS.get(code, 500)
