import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ownly_push.core.errors import InvalidRequest

REQUIRED_FIELDS = ("user_id", "title", "body")
DEFAULT_NOTIFICATION_TYPE = "system"


class SendPushRequest(BaseModel):
    """Bir bildirim gönderim isteği (DB trigger veya servis çağrısı)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: str
    title: str
    body: str
    data: dict[str, Any] | None = None
    type: str = DEFAULT_NOTIFICATION_TYPE
    notification_id: str | None = None

    @field_validator("user_id", "title", "body")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: str | None) -> str:
        return v or DEFAULT_NOTIFICATION_TYPE

    @classmethod
    def parse(cls, raw: bytes | str | dict) -> "SendPushRequest":
        """Ham gövdeyi doğrular; hatada InvalidRequest (400) fırlatır."""
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw or b"null")
            except (ValueError, UnicodeDecodeError) as e:
                raise InvalidRequest("Invalid JSON in request body") from e
        if not isinstance(raw, dict):
            raise InvalidRequest("Request body must be a JSON object")
        if any(not raw.get(f) for f in REQUIRED_FIELDS):
            raise InvalidRequest("Missing required fields: " + ", ".join(REQUIRED_FIELDS))
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc") or ())
            raise InvalidRequest(f"Invalid field {field}: {first.get('msg')}") from e


class SubscriptionResult(BaseModel):
    subscription_id: str
    endpoint: str
    success: bool
    error: str | None = None


class SendPushResponse(BaseModel):
    success: bool
    sent_count: int = 0
    failed_count: int = 0
    removed_count: int = 0
    results: list[SubscriptionResult] = []


class ApiErrorDetail(BaseModel):
    message: str
    code: str


class ApiError(BaseModel):
    error: ApiErrorDetail
    request_id: str | None = None
