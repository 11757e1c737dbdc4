"""Web Push abonelikleri: cihaz/tarayıcı başına bir endpoint."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PushSubscription(SQLModel, table=True):
    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="push_subscriptions_user_endpoint_unique"),)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True)
    endpoint: str = Field(index=True)  # push service URL
    p256dh: str  # client ECDH public key (base64url, 65 bytes)
    auth: str    # auth secret (base64url, 16 bytes)
    device_name: str | None = None
    user_agent: str | None = None
    is_active: bool = True  # 404/410 sonrası "deactivate" modunda false yapılır
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    last_used_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # son başarılı gönderim
