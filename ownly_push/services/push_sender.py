"""
Fan-out: bir kullanıcının tüm aktif aboneliklerine aynı bildirimi gönderir.

Validate -> FetchSubscriptions -> (her abonelik) Authenticate -> Encrypt -> Deliver
-> Classify -> mark_used | remove | none -> Aggregate.

Workers never touch the database session; results are aggregated and store
mutations applied in the calling thread once every delivery has finished.
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from ownly_push.core.config import VapidCredentials
from ownly_push.core.errors import AuthenticationError, DeliveryError, EncryptionError
from ownly_push.models import PushSubscription
from ownly_push.schemas import SendPushRequest, SendPushResponse, SubscriptionResult
from ownly_push.services.subscriptions import SubscriptionStore
from ownly_push.webpush.delivery import DEFAULT_TTL, deliver
from ownly_push.webpush.encryption import encrypt_payload
from ownly_push.webpush.vapid import audience_for, create_vapid_jwt

log = logging.getLogger("ownly_push.sender")


@dataclass(frozen=True)
class DeliveryOptions:
    timeout: float = 5.0
    max_concurrency: int = 4
    ttl: int = DEFAULT_TTL
    urgency: str = "normal"
    prune_mode: str = "delete"  # "delete" | "deactivate"

    @classmethod
    def from_settings(cls, s) -> "DeliveryOptions":
        return cls(
            timeout=s.push_request_timeout,
            max_concurrency=s.push_max_concurrency,
            ttl=s.push_ttl,
            urgency=s.push_urgency,
            prune_mode=s.push_prune_mode,
        )


@dataclass(frozen=True)
class _Attempt:
    subscription_id: str
    endpoint: str
    success: bool
    should_remove: bool = False
    error: str | None = None


def build_notification_payload(request: SendPushRequest) -> bytes:
    """Service worker'ın okuduğu JSON; notification_id yoksa alan hiç yazılmaz."""
    payload = {
        "title": request.title,
        "body": request.body,
        "data": request.data or {},
        "type": request.type,
    }
    if request.notification_id is not None:
        payload["notification_id"] = request.notification_id
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _send_one(
    subscription: PushSubscription,
    plaintext: bytes,
    vapid: VapidCredentials,
    options: DeliveryOptions,
) -> _Attempt:
    try:
        token = create_vapid_jwt(audience_for(subscription.endpoint), vapid)
        message = encrypt_payload(plaintext, subscription.p256dh, subscription.auth)
        deliver(
            subscription.endpoint,
            message,
            token,
            vapid,
            timeout=options.timeout,
            ttl=options.ttl,
            urgency=options.urgency,
        )
    except DeliveryError as e:
        return _Attempt(
            subscription.id,
            subscription.endpoint,
            success=False,
            should_remove=e.permanent,
            error=e.message,
        )
    except (AuthenticationError, EncryptionError) as e:
        log.error("Push to subscription %s failed (%s): %s", subscription.id, e.code, e.message)
        return _Attempt(subscription.id, subscription.endpoint, success=False, error=e.message)
    except Exception as e:
        # Tek aboneliğin beklenmeyen hatası diğer cihazlara gönderimi durdurmaz
        log.exception("Unexpected error pushing to subscription %s", subscription.id)
        return _Attempt(subscription.id, subscription.endpoint, success=False, error=f"Unexpected error: {e}")
    return _Attempt(subscription.id, subscription.endpoint, success=True)


def send_push_notification(
    request: SendPushRequest,
    store: SubscriptionStore,
    vapid: VapidCredentials,
    options: DeliveryOptions | None = None,
) -> SendPushResponse:
    options = options or DeliveryOptions()
    log.info("Sending push to user %s: %s", request.user_id, request.title)

    subscriptions = store.list_active(request.user_id)
    if not subscriptions:
        log.info("No active subscriptions for user %s", request.user_id)
        return SendPushResponse(success=True)

    log.info("Found %d active subscription(s)", len(subscriptions))
    plaintext = build_notification_payload(request)
    workers = min(options.max_concurrency, len(subscriptions))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push") as pool:
        attempts = list(
            pool.map(lambda sub: _send_one(sub, plaintext, vapid, options), subscriptions)
        )

    to_remove = [a.subscription_id for a in attempts if a.should_remove]
    for subscription_id in to_remove:
        if options.prune_mode == "deactivate":
            store.deactivate(subscription_id)
        else:
            store.remove(subscription_id)
    for a in attempts:
        if a.success:
            store.mark_used(a.subscription_id)

    results = [
        SubscriptionResult(
            subscription_id=a.subscription_id,
            endpoint=a.endpoint,
            success=a.success,
            error=a.error,
        )
        for a in attempts
    ]
    sent = sum(1 for r in results if r.success)
    failed = len(results) - sent
    log.info("Completed: %d sent, %d failed, %d removed", sent, failed, len(to_remove))
    return SendPushResponse(
        success=sent > 0,
        sent_count=sent,
        failed_count=failed,
        removed_count=len(to_remove),
        results=results,
    )
