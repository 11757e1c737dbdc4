from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from ownly_push.api.deps import get_subscription_store, get_vapid_credentials, require_invoker
from ownly_push.core.config import VapidCredentials, settings
from ownly_push.schemas import SendPushRequest, SendPushResponse
from ownly_push.services.push_sender import DeliveryOptions, send_push_notification
from ownly_push.services.subscriptions import SubscriptionStore

# Yol, orijinal edge function ile aynı: mevcut DB trigger'ı buraya yönlendirilebilir
router = APIRouter(prefix="/functions/v1", tags=["push"])


@router.post(
    "/send-push-notification",
    response_model=SendPushResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_invoker)],
)
async def send_push(
    request: Request,
    vapid: VapidCredentials = Depends(get_vapid_credentials),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    payload = SendPushRequest.parse(await request.body())
    return await run_in_threadpool(
        send_push_notification,
        payload,
        store,
        vapid,
        DeliveryOptions.from_settings(settings),
    )
