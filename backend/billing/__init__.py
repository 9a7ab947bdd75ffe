"""Session context, free-tier quota, profiles and Stripe checkout."""

from .session import (
    FREE_ATTEMPTS,
    ActionInProgressError,
    QuotaExceededError,
    SessionContext,
    SessionNotFoundError,
    SessionRegistry,
)
from .profiles import ProfileStore
from .checkout import (
    BillingUnavailableError,
    WebhookSignatureError,
    create_checkout_session,
    handle_webhook,
    verify_checkout_session,
)

__all__ = [
    'FREE_ATTEMPTS',
    'ActionInProgressError',
    'QuotaExceededError',
    'SessionContext',
    'SessionNotFoundError',
    'SessionRegistry',
    'ProfileStore',
    'BillingUnavailableError',
    'WebhookSignatureError',
    'create_checkout_session',
    'handle_webhook',
    'verify_checkout_session',
]
