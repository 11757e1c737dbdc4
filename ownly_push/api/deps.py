import hmac

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ownly_push.core.config import VapidCredentials, require_store_settings, settings
from ownly_push.core.database import get_db
from ownly_push.core.errors import ConfigurationError
from ownly_push.services.subscriptions import SubscriptionStore

security = HTTPBearer(auto_error=False)


def require_invoker(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> None:
    """INVOKE_TOKEN ayarlıysa çağıranın aynı token'ı Bearer olarak göndermesi gerekir."""
    expected = settings.invoke_token
    if not expected:
        return
    if not credentials or not hmac.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing invocation token.",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_vapid_credentials(request: Request) -> VapidCredentials:
    """Startup'ta bir kez kurulan VAPID anahtarları; kurulamadıysa CONFIGURATION_ERROR."""
    require_store_settings(settings)
    vapid = getattr(request.app.state, "vapid", None)
    if vapid is None:
        error = getattr(request.app.state, "vapid_error", None)
        raise ConfigurationError(error.message if error else "VAPID keys not configured.")
    return vapid


def get_subscription_store(db: Session = Depends(get_db)) -> SubscriptionStore:
    return SubscriptionStore(db)
