"""Error taxonomy for the push pipeline.

Invocation-level errors (InvalidRequest, ConfigurationError, StoreError) abort the
request and are rendered by the exception handler in ownly_push.main. The rest are
attempt-local: the orchestrator catches them per subscription.
"""


class PushServiceError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(PushServiceError):
    code = "INVALID_REQUEST"
    status_code = 400


class ConfigurationError(PushServiceError):
    code = "CONFIGURATION_ERROR"


class StoreError(PushServiceError):
    code = "STORE_ERROR"


class AuthenticationError(PushServiceError):
    code = "VAPID_ERROR"


class EncryptionError(PushServiceError):
    code = "ENCRYPTION_ERROR"


class DeliveryError(PushServiceError):
    """Push service rejected the message or could not be reached.

    permanent=True means the subscription is gone (404/410) and should be pruned.
    """

    code = "DELIVERY_ERROR"

    def __init__(self, message: str, *, permanent: bool = False, response_status: int | None = None):
        super().__init__(message)
        self.permanent = permanent
        self.response_status = response_status
