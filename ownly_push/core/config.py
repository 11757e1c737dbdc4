from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import field_validator
from pydantic_settings import BaseSettings

from ownly_push.core.errors import ConfigurationError
from ownly_push.webpush.encoding import b64url_decode, b64url_encode

# .env proje kökünde: ownly_push/core/config.py -> ownly_push/core -> ownly_push -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

DEFAULT_VAPID_SUBJECT = "mailto:noreply@ownly.app"
VAPID_PUBLIC_KEY_BYTES = 65  # uncompressed P-256 point: 0x04 || X || Y
VAPID_PRIVATE_KEY_BYTES = 32


class Settings(BaseSettings):
    # Subscription store (SQLModel). postgres:// URL'leri psycopg dialektine çevrilir.
    database_url: str = "sqlite:///./ownly_push.db"
    # VAPID anahtarları (base64url). Boşsa her çağrı CONFIGURATION_ERROR döner.
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = DEFAULT_VAPID_SUBJECT
    # Outbound push POST timeout (seconds); a timeout counts as a transient failure
    push_request_timeout: float = 5.0
    push_max_concurrency: int = 4
    push_ttl: int = 86400
    push_urgency: Literal["very-low", "low", "normal", "high"] = "normal"
    # 404/410 alan abonelik: "delete" satırı siler, "deactivate" is_active=false yapar
    push_prune_mode: Literal["delete", "deactivate"] = "delete"
    # Set to require "Authorization: Bearer <token>" on invocations (DB trigger sends the service key)
    invoke_token: str = ""
    cors_origins: str = "*"
    environment: str = "development"
    log_level: str = "INFO"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("vapid_public_key", "vapid_private_key", "invoke_token", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Boşluk/yanlış kopya kaynaklı hataları azaltır."""
        return (v or "").strip()

    @field_validator("vapid_subject", mode="before")
    @classmethod
    def default_subject(cls, v: str | None) -> str:
        return (v or "").strip() or DEFAULT_VAPID_SUBJECT

    @field_validator("push_max_concurrency")
    @classmethod
    def positive_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("PUSH_MAX_CONCURRENCY must be at least 1.")
        return v


settings = Settings()


@dataclass(frozen=True)
class VapidCredentials:
    """Process-wide VAPID key material, built once at startup and passed by reference."""

    public_key: str  # base64url, unpadded; sent as "k=" in the Authorization header
    public_key_bytes: bytes
    private_key_bytes: bytes
    subject: str

    @classmethod
    def from_settings(cls, s: Settings) -> "VapidCredentials":
        if not s.vapid_public_key or not s.vapid_private_key:
            raise ConfigurationError(
                "VAPID keys not configured. Set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY."
            )
        try:
            public_bytes = b64url_decode(s.vapid_public_key)
            private_bytes = b64url_decode(s.vapid_private_key)
        except ValueError as e:
            raise ConfigurationError(f"VAPID keys are not valid base64url: {e}") from e
        if len(public_bytes) != VAPID_PUBLIC_KEY_BYTES or public_bytes[0] != 0x04:
            raise ConfigurationError(
                f"VAPID_PUBLIC_KEY must be a {VAPID_PUBLIC_KEY_BYTES}-byte uncompressed P-256 point."
            )
        if len(private_bytes) != VAPID_PRIVATE_KEY_BYTES:
            raise ConfigurationError(f"VAPID_PRIVATE_KEY must be {VAPID_PRIVATE_KEY_BYTES} bytes.")
        if not s.vapid_subject.startswith(("mailto:", "https:")):
            raise ConfigurationError("VAPID_SUBJECT must be a mailto: or https: URI.")
        if derive_public_point(private_bytes) != public_bytes:
            raise ConfigurationError("VAPID_PUBLIC_KEY does not match VAPID_PRIVATE_KEY.")
        return cls(
            public_key=b64url_encode(public_bytes),
            public_key_bytes=public_bytes,
            private_key_bytes=private_bytes,
            subject=s.vapid_subject,
        )


def derive_public_point(private_bytes: bytes) -> bytes:
    """Uncompressed public point for a raw P-256 scalar."""
    try:
        key = ec.derive_private_key(int.from_bytes(private_bytes, "big"), ec.SECP256R1())
    except ValueError as e:
        raise ConfigurationError(f"VAPID_PRIVATE_KEY is not a valid P-256 scalar: {e}") from e
    return key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def require_store_settings(s: Settings) -> None:
    """Subscription store bağlantı ayarı yoksa çağrı yapılamaz."""
    if not (s.database_url or "").strip():
        raise ConfigurationError("Subscription store configuration missing (DATABASE_URL).")
