"""
Request payload transformation.

Upstream endpoints read the same logical value under different keys. Each
operation maps a client field to the set of upstream keys it is broadcast
under; changing what an upstream reads is an edit to ALIAS_TABLE only.
"""

import logging
from typing import Any, Mapping

from models.proxy_request_model import Operation

logger = logging.getLogger('scaleup.gateway')

PHONE_ALIASES = (
    'phone_number',
    'phone',
    'phoneNumber',
    'phone_no',
    'mobile',
    'phoneNo',
)

# operation -> {client field: upstream keys}; None means pass-through
ALIAS_TABLE: dict[Operation, dict[str, tuple[str, ...]] | None] = {
    Operation.OTP_GENERATE: {
        'phoneNumber': PHONE_ALIASES,
    },
    Operation.OTP_VERIFY: {
        'phoneNumber': PHONE_ALIASES,
        'otp': ('otp',),
    },
    Operation.REGISTER: None,
    Operation.GENERATE: None,
}


class TransformError(Exception):
    """Raised when an operation has no transformation entry."""

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation
        super().__init__(self.message)


def broadcast(value: Any, aliases: tuple[str, ...]) -> dict[str, Any]:
    return {alias: value for alias in aliases}


def transform_payload(
    operation: Operation,
    payload: Mapping[str, Any],
    table: Mapping[Operation, Mapping[str, tuple[str, ...]] | None] = ALIAS_TABLE,
) -> dict[str, Any]:
    """Build the upstream body for an operation.

    Mapped operations emit only their mapped fields, each under every alias.
    Pass-through operations forward the payload unchanged.
    """
    if operation not in table:
        raise TransformError(f'No payload mapping for {operation.value}', operation.value)
    mapping = table[operation]
    if mapping is None:
        return dict(payload)
    out: dict[str, Any] = {}
    for field, aliases in mapping.items():
        if field in payload:
            out.update(broadcast(payload[field], aliases))
    return out
