"""Subscription, credit purchase and trial endpoints."""

import asyncio
import logging
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from api.dependencies import get_app_settings, get_current_user, get_db
from api.schemas import CheckoutRequest, PaymentStatusResponse, TrialRequest, UserResponse
from config import Settings
from database.db_manager import DatabaseManager
from integrations.payments import (
    InvalidPriceTypeError,
    PaymentError,
    WebhookVerificationError,
    activate_trial,
    apply_webhook_event,
    create_checkout_session,
    create_portal_session,
    verify_webhook,
)
from models import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-checkout")
async def create_checkout(
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
):
    """Start a Stripe checkout for a subscription or a single credit."""
    loop = asyncio.get_running_loop()
    try:
        url = await loop.run_in_executor(
            None, partial(create_checkout_session, settings, user, body.price_type)
        )
    except InvalidPriceTypeError:
        raise HTTPException(400, "Invalid price type")
    except PaymentError:
        logger.exception("Checkout failed for user %s", user.id)
        raise HTTPException(500, "Failed to create checkout session")
    return {"url": url}


@router.post("/customer-portal")
async def customer_portal(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
):
    if not user.subscription_id:
        raise HTTPException(400, "No active subscription")
    loop = asyncio.get_running_loop()
    try:
        url = await loop.run_in_executor(
            None, partial(create_portal_session, settings, user.subscription_id)
        )
    except PaymentError:
        logger.exception("Portal session failed for user %s", user.id)
        raise HTTPException(500, "Failed to create portal session")
    return {"url": url}


@router.post("/webhook")
async def webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    settings: Settings = Depends(get_app_settings),
    db: DatabaseManager = Depends(get_db),
):
    """Stripe events. The signature is checked against the raw request body."""
    payload = await request.body()
    try:
        event = verify_webhook(settings, payload, stripe_signature)
    except WebhookVerificationError as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise HTTPException(400, f"Webhook Error: {e}")

    outcome = await apply_webhook_event(event, db.users)
    logger.info("Stripe event %s -> %s", event.get("type"), outcome or "no change")
    return {"received": True}


@router.get("/status", response_model=PaymentStatusResponse)
async def payment_status(user: User = Depends(get_current_user)):
    return PaymentStatusResponse(
        subscription_status=user.subscription_status.value,
        credits=user.credits,
        can_analyze=user.can_analyze(),
    )


@router.post("/activate-trial")
async def activate_trial_code(
    body: TrialRequest,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    db: DatabaseManager = Depends(get_db),
):
    try:
        updated = await activate_trial(settings, db.users, user.id, body.code)
    except PaymentError:
        raise HTTPException(400, "Invalid trial code")
    logger.info("Trial activated for user %s", user.id)
    return {
        "success": True,
        "message": "Trial activated! You now have Pro access.",
        "user": UserResponse.from_user(updated),
    }
