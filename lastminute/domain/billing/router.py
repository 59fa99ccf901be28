"""Billing router - usage metering endpoints for salon staff and the Stripe webhook"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_salon
from ...config import STRIPE_WEBHOOK_SECRET
from ...database import get_db
from ...models import Salon
from ...webhook_security import verify_stripe_webhook
from .schemas import MonthlyUsageResponse, UsageMetricResponse, UsageSummaryResponse
from .service import SUBSCRIPTION_EVENTS, BillingAccountService, UsageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])
webhooks_router = APIRouter(tags=["Webhooks"])


def get_usage_service(db: Session = Depends(get_db)) -> UsageService:
    """Dependency injection for UsageService"""
    return UsageService(db)


@router.get("/usage", response_model=UsageSummaryResponse)
async def get_usage_summary(
    salon: Salon = Depends(get_current_salon),
    service: UsageService = Depends(get_usage_service),
):
    """Totals plus the ten most recent billable requests"""
    return service.get_usage_summary(salon.id)


@router.get("/usage/monthly", response_model=MonthlyUsageResponse)
async def get_monthly_usage(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    salon: Salon = Depends(get_current_salon),
    service: UsageService = Depends(get_usage_service),
):
    """Usage for a calendar month; defaults to the current month"""
    now = datetime.now(timezone.utc)
    return service.get_monthly_usage(salon.id, year or now.year, month or now.month)


@router.get("/usage/recent", response_model=list[UsageMetricResponse])
async def get_recent_usage(
    limit: int = Query(10, ge=1, le=100),
    salon: Salon = Depends(get_current_salon),
    service: UsageService = Depends(get_usage_service),
):
    return service.get_recent_usage(salon.id, limit)


@webhooks_router.post("/webhooks/stripe")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Verify signature and apply subscription lifecycle events to billing_accounts

    Headers:
      - 'Stripe-Signature': 't={timestamp},v1={hex(hmac_sha256(timestamp.payload))}'
    """
    if not STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    raw_body = await verify_stripe_webhook(request, STRIPE_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = event.get("type")
    logger.info(f"🔔 Stripe webhook received id={event.get('id')} type={event_type}")

    if event_type in SUBSCRIPTION_EVENTS:
        subscription = (event.get("data") or {}).get("object") or {}
        BillingAccountService(db).apply_subscription_event(event_type, subscription)
    else:
        logger.info(f"Unhandled Stripe event type: {event_type}")

    return {"received": True}
