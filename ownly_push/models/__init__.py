from .push_subscription import PushSubscription, utcnow

__all__ = ["PushSubscription", "utcnow"]
