"""Configuration module for signed webhook delivery and ingestion.

This module provides two immutable configuration classes:

- ``DeliveryOptions`` for the outbound sender (per-call options)
- ``ReceiverConfig`` for the inbound validation pipeline

Both read the same ``PRIVATE_LOG_`` environment variables that the ticket bot
uses, so a sender and a receiver deployed from one environment agree on the
shared secret, token and freshness window.

Example:
    Basic usage with defaults:

        >>> options = DeliveryOptions()
        >>> options.max_attempts
        3
        >>> options.timeout_ms
        8000

    Custom receiver configuration:

        >>> config = ReceiverConfig(
        ...     token="testtoken",
        ...     hmac_secret="testsecret",
        ...     hmac_ttl=300,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['PRIVATE_LOG_TOKEN'] = 'testtoken'
        >>> os.environ['PRIVATE_LOG_HMAC_SECRET'] = 'testsecret'
        >>> config = ReceiverConfig.from_env()
        >>> config.token
        'testtoken'
"""

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from signed_webhooks.utils.headers import normalize_credential

# 5 MiB
DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024

DEFAULT_TTL_SECONDS = 300

ReplayKey = Literal["signature", "signature_timestamp", "full"]


def _read_env(
    field_types: dict[str, type],
    env_names: dict[str, str],
    prefix: str,
) -> dict[str, Any]:
    """Collect typed values for the given fields from prefixed env vars."""
    config_dict: dict[str, Any] = {}

    for field_name, field_type in field_types.items():
        env_var = f"{prefix}{env_names.get(field_name, field_name.upper())}"
        env_value = os.environ.get(env_var)

        if env_value is None:
            continue

        if field_type is int:
            config_dict[field_name] = int(env_value)
        elif field_type is bool:
            config_dict[field_name] = env_value.strip().lower() in ("1", "true", "yes", "on")
        else:
            config_dict[field_name] = env_value

    return config_dict


class DeliveryOptions(BaseModel):
    """Options for one outbound ``deliver()`` call.

    Attributes:
        hmac_secret: Shared HMAC secret. When None, no signature or timestamp
            headers are sent. Surrounding whitespace and quotes are stripped.
        timeout_ms: Per-attempt timeout in milliseconds. Default 8000.
        max_attempts: Total number of attempts, including the first.
            Must be between 1 and 20. Default 3.
        ttl_seconds: Freshness window the receiver enforces. Retries reuse
            the original timestamp, so a retry schedule longer than this
            window is logged as a warning. Default 300.
        timestamp_header_name: Header carrying the signing timestamp.
            Default "X-Timestamp".
        signature_header_name: Header carrying the signature.
            Default "X-Signature".
        backoff_base_ms: Linear backoff base; the wait after attempt n is
            ``backoff_base_ms * n``. Default 500.

    Note:
        This class is immutable (frozen=True). A delivery never changes its
        options between attempts.
    """

    hmac_secret: str | None = Field(
        default=None,
        description="Shared HMAC secret (None disables signing)",
    )
    timeout_ms: int = Field(
        default=8000,
        description="Per-attempt timeout in milliseconds",
    )
    max_attempts: int = Field(
        default=3,
        description="Total number of delivery attempts (1-20)",
    )
    ttl_seconds: int = Field(
        default=DEFAULT_TTL_SECONDS,
        description="Freshness window enforced by the receiver, in seconds",
    )
    timestamp_header_name: str = Field(
        default="X-Timestamp",
        description="Header carrying the signing timestamp",
    )
    signature_header_name: str = Field(
        default="X-Signature",
        description="Header carrying the signature",
    )
    backoff_base_ms: int = Field(
        default=500,
        description="Linear backoff base in milliseconds",
    )

    model_config = {"frozen": True}

    @field_validator("hmac_secret", mode="before")
    @classmethod
    def validate_hmac_secret(cls, v: Any) -> str | None:
        """Normalize the secret; blank values disable signing.

        Example:
            >>> DeliveryOptions(hmac_secret=' "testsecret" ').hmac_secret
            'testsecret'
        """
        return normalize_credential(v)

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout_ms(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"timeout_ms must be >= 1, got {v}")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if not (1 <= v <= 20):
            raise ValueError(f"max_attempts must be between 1 and 20, got {v}")
        return v

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl_seconds(cls, v: int) -> int:
        if not (1 <= v <= 86400):
            raise ValueError(f"ttl_seconds must be between 1 and 86400 (1 day), got {v}")
        return v

    @field_validator("backoff_base_ms")
    @classmethod
    def validate_backoff_base_ms(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"backoff_base_ms must be >= 0, got {v}")
        return v

    @field_validator("timestamp_header_name", "signature_header_name")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("header names must not be empty")
        return v

    def backoff_ms(self, attempt: int) -> int:
        """Backoff to wait after a failed attempt.

        Example:
            >>> DeliveryOptions().backoff_ms(2)
            1000
        """
        return self.backoff_base_ms * attempt

    @property
    def retry_window_ms(self) -> int:
        """Worst-case duration of a full delivery, timeouts and backoffs included."""
        backoffs = sum(self.backoff_ms(n) for n in range(1, self.max_attempts))
        return self.max_attempts * self.timeout_ms + backoffs

    @classmethod
    def from_env(cls, prefix: str = "PRIVATE_LOG_") -> "DeliveryOptions":
        """Create options from environment variables.

        Recognized variables (with the default prefix):
        ``PRIVATE_LOG_HMAC_SECRET``, ``PRIVATE_LOG_HMAC_TTL``,
        ``PRIVATE_LOG_TIMEOUT_MS``, ``PRIVATE_LOG_MAX_ATTEMPTS``,
        ``PRIVATE_LOG_BACKOFF_BASE_MS``, ``PRIVATE_LOG_TIMESTAMP_HEADER``,
        ``PRIVATE_LOG_SIGNATURE_HEADER``.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            DeliveryOptions populated from the environment; missing variables
            keep their defaults.
        """
        field_types = {
            "hmac_secret": str,
            "timeout_ms": int,
            "max_attempts": int,
            "ttl_seconds": int,
            "timestamp_header_name": str,
            "signature_header_name": str,
            "backoff_base_ms": int,
        }
        env_names = {
            "ttl_seconds": "HMAC_TTL",
            "timestamp_header_name": "TIMESTAMP_HEADER",
            "signature_header_name": "SIGNATURE_HEADER",
        }
        return cls(**_read_env(field_types, env_names, prefix))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "DeliveryOptions":
        """Create options from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)


class ReceiverConfig(BaseModel):
    """Configuration for the inbound validation pipeline.

    Attributes:
        token: Shared bearer token. When None, the authentication stage is
            disabled (a warning is logged when the pipeline is built).
        hmac_secret: Shared HMAC secret. When None, signature verification,
            freshness and replay detection are all disabled.
        hmac_ttl: Freshness window in seconds, applied in both directions,
            and lifetime of replay fingerprints. Default 300.
        max_body_bytes: Largest accepted body. Default 5 MiB.
        signature_header: Header carrying the signature. Default "X-Signature".
        timestamp_header: Header carrying the timestamp. Default "X-Timestamp".
        replay_key: Composition of the replay fingerprint: "signature",
            "signature_timestamp" or "full". Default "signature".
        allow_alt_token_header: Also accept the token in ``alt_token_header``.
            Meant for local testing only. Default False.
        alt_token_header: Alternate token header name.
            Default "X-Private-Log-Token".
        path: Route the receiver app serves. Default "/hooks/tickets".
        cleanup_interval_seconds: Interval of the background replay-store
            sweep. Default 60.
    """

    token: str | None = Field(
        default=None,
        description="Shared bearer token (None disables authentication)",
    )
    hmac_secret: str | None = Field(
        default=None,
        description="Shared HMAC secret (None disables signature checks)",
    )
    hmac_ttl: int = Field(
        default=DEFAULT_TTL_SECONDS,
        description="Freshness window and replay TTL in seconds",
    )
    max_body_bytes: int = Field(
        default=DEFAULT_MAX_BODY_BYTES,
        description="Maximum accepted request body size in bytes",
    )
    signature_header: str = Field(default="X-Signature")
    timestamp_header: str = Field(default="X-Timestamp")
    replay_key: ReplayKey = Field(
        default="signature",
        description="Replay fingerprint composition",
    )
    allow_alt_token_header: bool = Field(default=False)
    alt_token_header: str = Field(default="X-Private-Log-Token")
    path: str = Field(default="/hooks/tickets")
    cleanup_interval_seconds: int = Field(default=60)

    model_config = {"frozen": True}

    @field_validator("token", "hmac_secret", mode="before")
    @classmethod
    def validate_credentials(cls, v: Any) -> str | None:
        return normalize_credential(v)

    @field_validator("hmac_ttl")
    @classmethod
    def validate_hmac_ttl(cls, v: int) -> int:
        """Validate the freshness window.

        Raises:
            ValueError: If the TTL is not between 1 and 86400 seconds.
        """
        if not (1 <= v <= 86400):
            raise ValueError(f"hmac_ttl must be between 1 and 86400 (1 day), got {v}")
        return v

    @field_validator("max_body_bytes")
    @classmethod
    def validate_max_body_bytes(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_body_bytes must be >= 1, got {v}")
        return v

    @field_validator("cleanup_interval_seconds")
    @classmethod
    def validate_cleanup_interval_seconds(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"cleanup_interval_seconds must be >= 1, got {v}")
        return v

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/', got {v!r}")
        return v

    @field_validator("signature_header", "timestamp_header", "alt_token_header")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("header names must not be empty")
        return v

    @property
    def signing_enabled(self) -> bool:
        return self.hmac_secret is not None

    @classmethod
    def from_env(cls, prefix: str = "PRIVATE_LOG_") -> "ReceiverConfig":
        """Create configuration from environment variables.

        Variable names are the uppercase field names with the prefix, for
        example ``PRIVATE_LOG_TOKEN``, ``PRIVATE_LOG_HMAC_SECRET`` and
        ``PRIVATE_LOG_HMAC_TTL``.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            ReceiverConfig populated from the environment.
        """
        field_types = {
            "token": str,
            "hmac_secret": str,
            "hmac_ttl": int,
            "max_body_bytes": int,
            "signature_header": str,
            "timestamp_header": str,
            "replay_key": str,
            "allow_alt_token_header": bool,
            "alt_token_header": str,
            "path": str,
            "cleanup_interval_seconds": int,
        }
        return cls(**_read_env(field_types, {}, prefix))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "ReceiverConfig":
        """Create configuration from a dictionary."""
        return cls(**config_dict)
