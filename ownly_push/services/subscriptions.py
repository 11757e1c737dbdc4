"""Push subscription store: aktif abonelikleri okur, teslimat sonucuna göre günceller."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ownly_push.core.errors import StoreError
from ownly_push.models import PushSubscription, utcnow

log = logging.getLogger("ownly_push.store")


class SubscriptionStore:
    """
    Listing failures are fatal for the invocation (StoreError). Mutations are
    best-effort: a failure is rolled back and logged, and the method returns False.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, user_id: str) -> list[PushSubscription]:
        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .where(PushSubscription.is_active == True)  # noqa: E712
            .order_by(PushSubscription.created_at, PushSubscription.id)
        )
        try:
            return list(self.db.exec(stmt).all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch subscriptions: {e}") from e

    def remove(self, subscription_id: str) -> bool:
        try:
            sub = self.db.get(PushSubscription, subscription_id)
            if sub is not None:
                self.db.delete(sub)
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("Failed to remove subscription %s: %s", subscription_id, e)
            return False
        log.info("Removed invalid subscription %s", subscription_id)
        return True

    def deactivate(self, subscription_id: str) -> bool:
        return self._update(subscription_id, is_active=False)

    def mark_used(self, subscription_id: str) -> bool:
        return self._update(subscription_id, last_used_at=utcnow())

    def _update(self, subscription_id: str, **values) -> bool:
        try:
            sub = self.db.get(PushSubscription, subscription_id)
            if sub is None:
                # Eşzamanlı bir çağrı silmiş olabilir
                return False
            for name, value in values.items():
                setattr(sub, name, value)
            sub.updated_at = utcnow()
            self.db.add(sub)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("Failed to update subscription %s (%s): %s", subscription_id, ", ".join(values), e)
            return False
        return True
