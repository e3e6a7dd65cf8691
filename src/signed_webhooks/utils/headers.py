"""Header and credential helpers for signed webhooks.

This module provides functions for:
- Normalizing shared tokens and secrets read from the environment
- Case-insensitive header lookup
- Extracting bearer tokens from inbound requests
- Masking credentials before they reach the logs
"""

from collections.abc import Mapping

AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "Bearer "


def normalize_credential(value: str | None) -> str | None:
    """Trim a token or secret and strip one pair of surrounding quotes.

    Values pasted into environment files often carry quotes
    (``PRIVATE_LOG_TOKEN="abc"``). Both sides normalize the same way so that
    a quoted value on one side still matches an unquoted one on the other.

    Args:
        value: Raw credential value, possibly None

    Returns:
        The normalized credential, or None if the value is None or blank

    Example:
        >>> normalize_credential('  "abc123" ')
        'abc123'
        >>> normalize_credential("'x'")
        'x'
        >>> normalize_credential("   ") is None
        True
    """
    if value is None:
        return None

    normalized = str(value).strip()
    if len(normalized) >= 2 and normalized[0] == normalized[-1] and normalized[0] in ("'", '"'):
        normalized = normalized[1:-1].strip()

    return normalized or None


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Look up a header value by name, case-insensitively.

    Args:
        headers: Request headers
        name: Header name in any case

    Returns:
        The header value if present, None otherwise

    Example:
        >>> get_header({"X-Timestamp": "1700000000000"}, "x-timestamp")
        '1700000000000'
    """
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            return value
    return None


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Args:
        headers: Request headers

    Returns:
        The stripped token, or None if the header is missing or not a bearer
        credential

    Example:
        >>> extract_bearer_token({"Authorization": "Bearer testtoken"})
        'testtoken'
        >>> extract_bearer_token({"Authorization": "Basic dXNlcjpwYXNz"}) is None
        True
    """
    value = get_header(headers, AUTHORIZATION_HEADER)
    if not value or not value.startswith(BEARER_PREFIX):
        return None

    token = value[len(BEARER_PREFIX) :].strip()
    return token or None


def build_delivery_headers(
    token: str | None,
    signature_headers: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the outbound header set for a delivery.

    Args:
        token: Bearer token, or None to omit the Authorization header
        signature_headers: Signature and timestamp headers, if signing

    Returns:
        Header dictionary for the POST request

    Example:
        >>> build_delivery_headers("abc")
        {'Content-Type': 'application/json', 'Authorization': 'Bearer abc'}
    """
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"{BEARER_PREFIX}{token}"
    if signature_headers:
        headers.update(signature_headers)
    return headers


def mask_credential(value: str | None, visible: int = 4) -> str:
    """Mask a credential for logging, keeping a short prefix.

    Example:
        >>> mask_credential("supersecrettoken")
        'supe...'
        >>> mask_credential(None)
        '<unset>'
    """
    if not value:
        return "<unset>"
    return f"{value[:visible]}..."
