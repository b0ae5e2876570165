"""
Confirmation tokens and protocol codes.

Both values come from the `secrets` CSPRNG and are independent of the
internship id and of any timestamp.
"""

import secrets
from typing import Any

TOKEN_BYTES = 32  # 64 hex characters
PROTOCOL_PREFIX = "EST-"
PROTOCOL_BYTES = 8  # 16 hex characters

AUDIT_FIELDS = (
    "ip",
    "user_agent",
    "device_type",
    "device_description",
    "device_id",
    "operating_system",
    "browser",
    "location",
)


def generate_confirmation_token() -> str:
    """Return a 64-character lowercase hex token."""
    return secrets.token_hex(TOKEN_BYTES)


def generate_protocol_code() -> str:
    """Return a receipt code such as ``EST-9F86D081884C7D65``."""
    return PROTOCOL_PREFIX + secrets.token_hex(PROTOCOL_BYTES).upper()


def merge_audit_fields(existing: Any, supplied: dict[str, Any]) -> dict[str, Any]:
    """
    Merge audit metadata for a confirmation.

    For every audit field the supplied value wins, otherwise the value already
    stored is kept, otherwise None.
    """
    merged = {}
    for field in AUDIT_FIELDS:
        value = supplied.get(field)
        if value is None:
            value = getattr(existing, field, None)
        merged[field] = value
    return merged
