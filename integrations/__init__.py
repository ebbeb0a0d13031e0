from .ghin import (
    GhinAuthError,
    GhinClient,
    GhinError,
    GhinNotFoundError,
    GhinUnavailableError,
    TokenCache,
)
from .payments import PaymentError, WebhookVerificationError, apply_webhook_event

__all__ = [
    "GhinClient",
    "TokenCache",
    "GhinError",
    "GhinUnavailableError",
    "GhinNotFoundError",
    "GhinAuthError",
    "PaymentError",
    "WebhookVerificationError",
    "apply_webhook_event",
]
