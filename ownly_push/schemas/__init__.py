from .push import ApiError, ApiErrorDetail, SendPushRequest, SendPushResponse, SubscriptionResult

__all__ = [
    "ApiError",
    "ApiErrorDetail",
    "SendPushRequest",
    "SendPushResponse",
    "SubscriptionResult",
]
