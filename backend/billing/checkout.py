"""Stripe checkout for the Pro upgrade.

Only the boundary calls live here: create a hosted checkout session, verify it
after the redirect, and react to the ``checkout.session.completed`` webhook.
"""

import os
from typing import Any, Dict, Optional

import stripe
from dotenv import load_dotenv

from .profiles import ProfileStore

load_dotenv()

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_PRICE_ID = os.getenv("STRIPE_PRICE_ID", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
SITE_URL = os.getenv("SITE_URL", "http://localhost:5173").rstrip("/")


class BillingUnavailableError(RuntimeError):
    """Stripe is not configured or rejected the call."""


class WebhookSignatureError(ValueError):
    pass


def _configure():
    if not STRIPE_SECRET_KEY or not STRIPE_PRICE_ID:
        raise BillingUnavailableError("Stripe is not configured (STRIPE_SECRET_KEY / STRIPE_PRICE_ID).")
    stripe.api_key = STRIPE_SECRET_KEY


def create_checkout_session(user_id: str, email: Optional[str] = None) -> str:
    """Create a one-off payment session and return the hosted checkout URL."""
    if not user_id:
        raise ValueError("user_id is required")
    _configure()
    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            line_items=[{"price": STRIPE_PRICE_ID, "quantity": 1}],
            customer_email=email or None,
            success_url=f"{SITE_URL}/?checkout=success&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{SITE_URL}/?checkout=cancel",
            metadata={"userId": user_id},
        )
    except stripe.StripeError as e:
        raise BillingUnavailableError(str(e)) from e
    print(f"[billing] Checkout session {session.id} created for {user_id}")
    return session.url


def _is_paid(session: Dict[str, Any]) -> bool:
    if session.get("payment_status") == "paid":
        return True
    intent = session.get("payment_intent")
    return isinstance(intent, dict) and intent.get("status") == "succeeded"


def _user_id(session: Dict[str, Any]) -> Optional[str]:
    metadata = session.get("metadata") or {}
    return metadata.get("userId") or session.get("client_reference_id")


def verify_checkout_session(session_id: str, profiles: ProfileStore) -> Dict[str, Any]:
    """Check a returning checkout session and upgrade the user when it was paid."""
    if not session_id:
        raise ValueError("session_id is required")
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id, expand=["payment_intent"])
    except stripe.StripeError as e:
        raise BillingUnavailableError(str(e)) from e

    paid = _is_paid(session)
    user_id = _user_id(session)
    if paid and user_id:
        profiles.mark_pro(user_id)
    return {"paid": paid, "user_id": user_id}


def handle_webhook(payload: bytes, signature: str, profiles: ProfileStore) -> Optional[str]:
    """Verify and apply a webhook event. Returns the upgraded user id, if any."""
    if not STRIPE_WEBHOOK_SECRET:
        raise BillingUnavailableError("STRIPE_WEBHOOK_SECRET is not set.")
    try:
        event = stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise WebhookSignatureError(str(e)) from e

    print(f"[billing] Webhook event {event['type']}")
    if event["type"] != "checkout.session.completed":
        return None
    session = event["data"]["object"]
    user_id = _user_id(session)
    if user_id:
        profiles.mark_pro(user_id)
    return user_id
