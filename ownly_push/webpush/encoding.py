"""Base64url helpers for Web Push key material (unpadded, RFC 7515 style)."""
import base64
import binascii


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(value: str) -> bytes:
    """
    Decodes base64url, tolerating missing padding and the standard +/ alphabet
    (some browsers and key generators hand out either form).
    Raises ValueError on malformed input.
    """
    if not isinstance(value, str):
        raise ValueError("base64url value must be a string")
    s = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    s += "=" * (-len(s) % 4)
    try:
        return base64.urlsafe_b64decode(s.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64url value: {e}") from e
