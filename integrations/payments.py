"""Stripe checkout, customer portal and webhook handling."""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from config import Settings
from database.exceptions import NotFoundError
from models.user import SubscriptionStatus, User

logger = logging.getLogger(__name__)

SUBSCRIPTION_PRICE_TYPES = ("monthly", "yearly")
CREDIT_PRICE_TYPE = "credits"
CREDITS_PER_PURCHASE = 1
TRIAL_CREDITS = 99

ACTIVE_SUBSCRIPTION_STATES = ("active", "trialing")


class PaymentError(Exception):
    """Base exception for payment failures."""
    pass


class InvalidPriceTypeError(PaymentError):
    pass


class WebhookVerificationError(PaymentError):
    """Webhook payload missing, malformed, or not signed with our secret."""
    pass


def price_for(settings: Settings, price_type: str) -> str:
    prices = {
        "monthly": settings.stripe_price_monthly,
        "yearly": settings.stripe_price_yearly,
        CREDIT_PRICE_TYPE: settings.stripe_price_credits,
    }
    price_id = prices.get(price_type)
    if not price_id:
        raise InvalidPriceTypeError(f"Invalid price type: {price_type}")
    return price_id


def create_checkout_session(settings: Settings, user: User, price_type: str) -> str:
    """Create a hosted checkout session and return its URL."""
    price_id = price_for(settings, price_type)
    is_subscription = price_type in SUBSCRIPTION_PRICE_TYPES
    try:
        session = stripe.checkout.Session.create(
            api_key=settings.stripe_secret_key,
            customer_email=user.email,
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription" if is_subscription else "payment",
            success_url=f"{settings.frontend_url}?payment=success",
            cancel_url=settings.frontend_url,
            metadata={"userId": str(user.id), "priceType": price_type},
        )
    except stripe.StripeError as e:
        raise PaymentError(f"Checkout session creation failed: {e}") from e
    return session.url


def create_portal_session(settings: Settings, subscription_id: str) -> str:
    """Create a billing portal session for the subscription's customer."""
    try:
        subscription = stripe.Subscription.retrieve(subscription_id, api_key=settings.stripe_secret_key)
        portal = stripe.billing_portal.Session.create(
            api_key=settings.stripe_secret_key,
            customer=subscription.customer,
            return_url=f"{settings.frontend_url}/settings",
        )
    except stripe.StripeError as e:
        raise PaymentError(f"Portal session creation failed: {e}") from e
    return portal.url


def verify_webhook(settings: Settings, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """Check the signature over the raw body and return the event as a plain dict."""
    if not signature:
        raise WebhookVerificationError("Missing Stripe-Signature header")
    if not settings.stripe_webhook_secret:
        raise WebhookVerificationError("Webhook secret not configured")
    try:
        stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
        return json.loads(payload)
    except (stripe.SignatureVerificationError, ValueError) as e:
        raise WebhookVerificationError(str(e)) from e


async def apply_webhook_event(event: Mapping[str, Any], users) -> Optional[str]:
    """
    Apply a verified Stripe event to the user store.

    Returns a short description of the change made, or None when the event
    needs no state change.
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        metadata = obj.get("metadata") or {}
        user_id = metadata.get("userId")
        if not user_id:
            logger.warning("Checkout session %s has no userId metadata", obj.get("id"))
            return None
        try:
            if metadata.get("priceType") == CREDIT_PRICE_TYPE:
                await users.add_credits(user_id, CREDITS_PER_PURCHASE)
                logger.info("Added %d credit(s) to user %s", CREDITS_PER_PURCHASE, user_id)
                return "credits_added"
            await users.set_subscription(user_id, SubscriptionStatus.PRO, obj.get("subscription"))
        except NotFoundError:
            logger.error("Checkout session %s names unknown user %s", obj.get("id"), user_id)
            return None
        logger.info("User %s upgraded to pro", user_id)
        return "subscription_started"

    if event_type == "customer.subscription.updated":
        status = (
            SubscriptionStatus.PRO
            if obj.get("status") in ACTIVE_SUBSCRIPTION_STATES
            else SubscriptionStatus.FREE
        )
        user = await users.update_subscription_by_id(obj.get("id"), status)
        if user is None:
            logger.warning("No user for subscription %s", obj.get("id"))
            return None
        return f"subscription_{status.value}"

    if event_type == "customer.subscription.deleted":
        user = await users.update_subscription_by_id(
            obj.get("id"), SubscriptionStatus.FREE, clear_subscription=True
        )
        if user is None:
            logger.warning("No user for deleted subscription %s", obj.get("id"))
            return None
        return "subscription_cancelled"

    if event_type == "invoice.payment_failed":
        logger.warning(
            "Payment failed for customer %s (subscription %s)",
            obj.get("customer"), obj.get("subscription"),
        )
        return None

    logger.debug("Ignoring Stripe event %s", event_type)
    return None


async def activate_trial(settings: Settings, users, user_id: str, code: Optional[str]) -> User:
    """Grant pro status and trial credits when the code matches."""
    if not code or code != settings.trial_code:
        raise PaymentError("Invalid trial code")
    return await users.activate_trial(user_id, TRIAL_CREDITS)
