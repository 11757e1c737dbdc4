"""
Web Push payload encryption, aes128gcm content coding (RFC 8291 + RFC 8188).

Her şifreleme taze bir ephemeral ECDH anahtar çifti ve taze 16 byte salt kullanır;
ikisi de asla önbelleğe alınmaz veya abonelikler arasında paylaşılmaz.
"""
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ownly_push.core.errors import EncryptionError
from ownly_push.webpush.encoding import b64url_decode
from ownly_push.webpush.hkdf import hkdf_extract_and_expand

RECORD_SIZE = 4096
SALT_BYTES = 16
AUTH_SECRET_BYTES = 16
P256_POINT_BYTES = 65
TAG_BYTES = 16
PADDING_DELIMITER = b"\x02"  # last (and only) record

KEY_INFO_PREFIX = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"

# delimiter + tag must fit in one record
MAX_PLAINTEXT_BYTES = RECORD_SIZE - TAG_BYTES - len(PADDING_DELIMITER)


@dataclass(frozen=True)
class EncryptedPushMessage:
    salt: bytes
    server_public_key: bytes
    ciphertext: bytes  # includes the 16-byte GCM tag


def _decode_subscription_keys(p256dh: str, auth: str) -> tuple[bytes, bytes]:
    try:
        client_public = b64url_decode(p256dh)
        auth_secret = b64url_decode(auth)
    except ValueError as e:
        raise EncryptionError(f"Malformed subscription keys: {e}") from e
    if len(client_public) != P256_POINT_BYTES:
        raise EncryptionError(
            f"p256dh must decode to {P256_POINT_BYTES} bytes, got {len(client_public)}"
        )
    if len(auth_secret) != AUTH_SECRET_BYTES:
        raise EncryptionError(f"auth must decode to {AUTH_SECRET_BYTES} bytes, got {len(auth_secret)}")
    return client_public, auth_secret


def encrypt_payload(plaintext: bytes, p256dh: str, auth: str) -> EncryptedPushMessage:
    """
    Encrypts plaintext for one subscription.

    key_info = "WebPush: info\\0" || ua_public || as_public
    IKM   = HKDF(salt=auth_secret, ikm=ecdh_secret, info=key_info, 32)
    CEK   = HKDF(salt=salt, ikm=IKM, info="Content-Encoding: aes128gcm\\0", 16)
    NONCE = HKDF(salt=salt, ikm=IKM, info="Content-Encoding: nonce\\0", 12)

    Raises EncryptionError for malformed keys, oversized payloads or provider errors.
    """
    if len(plaintext) > MAX_PLAINTEXT_BYTES:
        raise EncryptionError(
            f"Payload too large: {len(plaintext)} bytes (max {MAX_PLAINTEXT_BYTES})"
        )
    client_public, auth_secret = _decode_subscription_keys(p256dh, auth)
    try:
        client_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), client_public)
        server_private = ec.generate_private_key(ec.SECP256R1())
        server_public = server_private.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )
        shared_secret = server_private.exchange(ec.ECDH(), client_key)
    except (ValueError, InvalidKey) as e:
        raise EncryptionError(f"ECDH key agreement failed: {e}") from e

    salt = secrets.token_bytes(SALT_BYTES)
    ikm = hkdf_extract_and_expand(
        auth_secret, shared_secret, KEY_INFO_PREFIX + client_public + server_public, 32
    )
    cek = hkdf_extract_and_expand(salt, ikm, CEK_INFO, 16)
    nonce = hkdf_extract_and_expand(salt, ikm, NONCE_INFO, 12)

    ciphertext = AESGCM(cek).encrypt(nonce, plaintext + PADDING_DELIMITER, None)
    return EncryptedPushMessage(salt=salt, server_public_key=server_public, ciphertext=ciphertext)
