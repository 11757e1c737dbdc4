"""
Sends one encrypted message to a push service and classifies the response.

    2xx            -> success
    404, 410       -> DeliveryError(permanent=True); subscription is gone
    3xx, 429, other -> DeliveryError(permanent=False); redirects are not followed
    network error  -> DeliveryError(permanent=False)

No retries here; the caller decides whether to re-trigger.
"""
import logging
import struct
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import HTTPRedirectHandler, Request, build_opener

from ownly_push.core.config import VapidCredentials
from ownly_push.core.errors import DeliveryError
from ownly_push.webpush.encryption import RECORD_SIZE, EncryptedPushMessage
from ownly_push.webpush.vapid import authorization_header

log = logging.getLogger("ownly_push.delivery")

DEFAULT_TTL = 86400
GONE_STATUSES = (404, 410)
RATE_LIMITED_STATUS = 429
_MAX_ERROR_TEXT = 500


class _NoRedirectHandler(HTTPRedirectHandler):
    """3xx yanıtı HTTPError olarak kalır; POST gövdesiz GET'e dönüşmez."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


_opener = build_opener(_NoRedirectHandler)


def frame_body(message: EncryptedPushMessage) -> bytes:
    """aes128gcm header: salt(16) || rs(uint32 BE) || idlen(1) || keyid(65) || ciphertext."""
    return (
        message.salt
        + struct.pack("!IB", RECORD_SIZE, len(message.server_public_key))
        + message.server_public_key
        + message.ciphertext
    )


def build_headers(
    body_length: int,
    token: str,
    vapid: VapidCredentials,
    ttl: int = DEFAULT_TTL,
    urgency: str = "normal",
) -> dict[str, str]:
    return {
        "Content-Type": "application/octet-stream",
        "Content-Encoding": "aes128gcm",
        "Content-Length": str(body_length),
        "TTL": str(ttl),
        "Authorization": authorization_header(token, vapid),
        "Urgency": urgency,
    }


def _error_text(exc: HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="replace")[:_MAX_ERROR_TEXT]
    except (OSError, ValueError, HTTPException):
        return ""


def deliver(
    endpoint: str,
    message: EncryptedPushMessage,
    token: str,
    vapid: VapidCredentials,
    *,
    timeout: float,
    ttl: int = DEFAULT_TTL,
    urgency: str = "normal",
) -> int:
    """POSTs the framed message. Returns the push service status on success."""
    body = frame_body(message)
    headers = build_headers(len(body), token, vapid, ttl=ttl, urgency=urgency)
    try:
        req = Request(endpoint, data=body, headers=headers, method="POST")
        with _opener.open(req, timeout=timeout) as r:
            return r.status
    except HTTPError as e:
        status = e.code
        text = _error_text(e)
        log.error("Push failed with status %s: %s", status, text)
        if status in GONE_STATUSES:
            raise DeliveryError(
                f"Subscription expired or invalid ({status})", permanent=True, response_status=status
            ) from e
        if status == RATE_LIMITED_STATUS:
            raise DeliveryError("Rate limited by push service", response_status=status) from e
        raise DeliveryError(f"Push failed with status {status}: {text}", response_status=status) from e
    except (URLError, OSError, HTTPException, ValueError) as e:
        # HTTPException: bozuk status satırı, yarım gövde; ValueError: geçersiz URL
        reason = getattr(e, "reason", None) or e
        log.error("Push request to %s failed: %s", endpoint, reason)
        raise DeliveryError(f"Push request failed: {reason}") from e
