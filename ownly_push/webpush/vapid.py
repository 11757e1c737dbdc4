"""
VAPID (RFC 8292) authorization: ES256 JWT signed with the application server key.

Ham 32 byte private key önce PKCS8 (DER) yapısına sarılır, sonra imza anahtarı olarak
yüklenir. PKCS8 içindeki public key alanı, scalar'dan türetilen gerçek noktadır (sıfır değil).
"""
import time
from urllib.parse import urlsplit

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt
from jose.exceptions import JOSEError

from ownly_push.core.config import VapidCredentials, derive_public_point
from ownly_push.core.errors import AuthenticationError, ConfigurationError
from ownly_push.webpush.encoding import b64url_encode

ALGORITHM = "ES256"
TOKEN_EXPIRE_SECONDS = 12 * 60 * 60  # 12 saat (protokol üst sınırı 24 saat)

# PrivateKeyInfo { version 0, AlgorithmIdentifier { id-ecPublicKey, prime256v1 },
#   OCTET STRING { ECPrivateKey { version 1, OCTET STRING(32) privateKey, ...
_PKCS8_PREFIX = bytes.fromhex(
    "308187020100301306072a8648ce3d020106082a8648ce3d030107046d306b0201010420"
)
# ... [1] { BIT STRING (0 unused bits) publicKey } } }
_PKCS8_PUBLIC_KEY_TAG = bytes.fromhex("a144034200")


def raw_private_key_to_pkcs8(private_bytes: bytes) -> bytes:
    """32 byte ham P-256 scalar -> 138 byte PKCS8 DER."""
    if len(private_bytes) != 32:
        raise AuthenticationError(f"VAPID private key must be 32 bytes, got {len(private_bytes)}")
    try:
        public_point = derive_public_point(private_bytes)
    except ConfigurationError as e:
        raise AuthenticationError(e.message) from e
    return _PKCS8_PREFIX + private_bytes + _PKCS8_PUBLIC_KEY_TAG + public_point


def load_signing_key(private_bytes: bytes) -> ec.EllipticCurvePrivateKey:
    try:
        key = serialization.load_der_private_key(raw_private_key_to_pkcs8(private_bytes), password=None)
    except ValueError as e:
        raise AuthenticationError(f"VAPID private key import failed: {e}") from e
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise AuthenticationError("VAPID private key is not an EC key")
    return key


def audience_for(endpoint: str) -> str:
    """Push service origin: scheme://host[:port] of the subscription endpoint."""
    parts = urlsplit(endpoint)
    try:
        parts.port  # sayısal olmayan port ValueError fırlatır
    except ValueError as e:
        raise AuthenticationError(f"Invalid push endpoint URL: {endpoint!r}") from e
    if parts.scheme not in ("https", "http") or not parts.hostname:
        raise AuthenticationError(f"Invalid push endpoint URL: {endpoint!r}")
    return f"{parts.scheme}://{parts.netloc}"


def create_vapid_jwt(audience: str, vapid: VapidCredentials, now: int | None = None) -> str:
    """Compact JWS; imza DER değil ham 64 byte r||s (JWS ES256)."""
    issued = int(time.time()) if now is None else now
    claims = {
        "aud": audience,
        "exp": issued + TOKEN_EXPIRE_SECONDS,
        "sub": vapid.subject,
    }
    signing_key = load_signing_key(vapid.private_key_bytes)
    try:
        return jwt.encode(claims, signing_key, algorithm=ALGORITHM)
    except JOSEError as e:
        raise AuthenticationError(f"VAPID signing failed: {e}") from e


def authorization_header(token: str, vapid: VapidCredentials) -> str:
    return f"vapid t={token}, k={vapid.public_key}"


def generate_vapid_keys() -> tuple[str, str]:
    """Yeni P-256 VAPID çifti: (public 65 byte, private 32 byte), ikisi de base64url."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_bytes = private_key.private_numbers().private_value.to_bytes(32, "big")
    public_bytes = private_key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    return b64url_encode(public_bytes), b64url_encode(private_bytes)
