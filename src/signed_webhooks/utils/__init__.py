"""Utility modules for signed webhooks."""

from .headers import (
    build_delivery_headers,
    extract_bearer_token,
    get_header,
    mask_credential,
    normalize_credential,
)

__all__ = [
    "build_delivery_headers",
    "extract_bearer_token",
    "get_header",
    "mask_credential",
    "normalize_credential",
]
