"""
Usage metering service

Every stored booking request or consultation is one billable unit. The
metric row is the source of truth; the Stripe usage record is best effort
and only sent for salons with an active metered subscription.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ...config import STRIPE_API_BASE, STRIPE_SECRET_KEY
from ...models import BillingAccount, UsageMetric
from ...shared.timestamps import normalize_timestamp
from .repository import BillingRepository

logger = logging.getLogger(__name__)


async def fetch_subscription_item_id(subscription_id: str) -> Optional[str]:
    """First item of a Stripe subscription (the metered price)"""
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{STRIPE_API_BASE}/subscriptions/{subscription_id}",
            auth=(STRIPE_SECRET_KEY, ""),
            timeout=10.0,
        )
    response.raise_for_status()
    items = response.json().get("items", {}).get("data", [])
    return items[0]["id"] if items else None


async def report_usage_to_stripe(subscription_item_id: str, quantity: int = 1) -> None:
    """Increment a metered subscription item. Raises on any Stripe error."""
    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{STRIPE_API_BASE}/subscription_items/{subscription_item_id}/usage_records",
            auth=(STRIPE_SECRET_KEY, ""),
            data={
                "quantity": quantity,
                "timestamp": int(datetime.now(timezone.utc).timestamp()),
                "action": "increment",
            },
            timeout=10.0,
        )

    if response.status_code not in (200, 201):
        try:
            error = response.json().get("error", {}).get("message", "Unknown error")
        except ValueError:
            error = response.text
        raise httpx.HTTPStatusError(
            f"Stripe usage record rejected: {error}",
            request=response.request,
            response=response,
        )


def metric_to_dict(metric: UsageMetric) -> dict:
    return {
        "id": metric.id,
        "salonId": metric.salon_id,
        "type": metric.type,
        "requestId": metric.request_id,
        "userId": metric.user_id,
        "timestamp": normalize_timestamp(metric.timestamp),
    }


def _counts(metrics: list[UsageMetric]) -> dict:
    return {
        "totalRequests": len(metrics),
        "bookingCount": sum(1 for m in metrics if m.type == "booking"),
        "consultationCount": sum(1 for m in metrics if m.type == "consultation"),
    }


class UsageService:
    """Service layer for usage metering"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    async def track_usage(
        self, salon_id: str, type: str, request_id: str, user_id: Optional[str] = None
    ) -> UsageMetric:
        """Record one billable unit and mirror it to Stripe when billing is set up"""
        metric = self.repo.create_usage_metric(
            self.db, salon_id, type, request_id, user_id or "anonymous"
        )
        logger.info(f"📊 Usage tracked: {type} {request_id} for salon {salon_id}")

        try:
            await self._record_to_stripe(salon_id)
        except Exception as e:
            # The metric is already stored; billing can be reconciled from it later
            logger.error(f"⚠️ Failed to record usage to Stripe for salon {salon_id}: {e}")

        return metric

    async def _record_to_stripe(self, salon_id: str) -> bool:
        account = self.repo.get_active_billing_account(self.db, salon_id)
        if not account:
            logger.debug(f"ℹ️ No active billing account for salon {salon_id}")
            return False

        if not STRIPE_SECRET_KEY:
            logger.warning("⚠️ STRIPE_SECRET_KEY not configured, skipping usage record")
            return False

        item_id = account.subscription_item_id
        if not item_id and account.subscription_id:
            item_id = await fetch_subscription_item_id(account.subscription_id)
            if item_id:
                self.repo.set_subscription_item(self.db, account, item_id)

        if not item_id:
            logger.warning(f"⚠️ No subscription item for salon {salon_id}, usage not billed")
            return False

        await report_usage_to_stripe(item_id, 1)
        logger.info(f"✅ Usage recorded to Stripe for salon {salon_id}")
        return True

    def get_usage_summary(self, salon_id: str, recent_limit: int = 10) -> dict:
        metrics = self.repo.get_usage_metrics(self.db, salon_id)
        return {
            "salonId": salon_id,
            **_counts(metrics),
            "lastUpdated": normalize_timestamp(metrics[0].timestamp) if metrics else None,
            "recent": [metric_to_dict(m) for m in metrics[:recent_limit]],
        }

    def get_monthly_usage(self, salon_id: str, year: int, month: int) -> dict:
        """Usage for one calendar month (UTC)"""
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        next_month = datetime(year + month // 12, month % 12 + 1, 1, tzinfo=timezone.utc)
        metrics = self.repo.get_usage_metrics(
            self.db, salon_id, start=start, end=next_month - timedelta(microseconds=1)
        )
        return {
            "salonId": salon_id,
            "year": year,
            "month": month,
            **_counts(metrics),
            "metrics": [metric_to_dict(m) for m in metrics],
        }

    def get_recent_usage(self, salon_id: str, limit: int = 10) -> list[dict]:
        return [metric_to_dict(m) for m in self.repo.get_usage_metrics(self.db, salon_id, limit=limit)]


SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
SUBSCRIPTION_EVENTS = (SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED)


def _subscription_item_id(subscription: dict) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0].get("id") if items else None


def _customer_id(subscription: dict) -> Optional[str]:
    customer = subscription.get("customer")
    # Expanded customers arrive as objects
    if isinstance(customer, dict):
        return customer.get("id")
    return customer


class BillingAccountService:
    """Keeps billing_accounts in step with Stripe subscription webhooks"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def apply_subscription_event(self, event_type: str, subscription: dict) -> Optional[BillingAccount]:
        """
        Create or update the salon's billing account from a subscription event

        The salon comes from the subscription's ``salonId`` metadata; an
        account already linked to the subscription id is updated even when
        the metadata is missing.
        """
        subscription_id = subscription.get("id")
        salon_id = (subscription.get("metadata") or {}).get("salonId")

        account = None
        if subscription_id:
            account = self.repo.get_billing_account_by_subscription(self.db, subscription_id)
        if account is None and salon_id:
            account = self.repo.get_billing_account_for_salon(self.db, salon_id)

        if account is None:
            if not salon_id:
                logger.warning(f"⚠️ No salonId in metadata of subscription {subscription_id}, ignoring")
                return None
            if event_type == SUBSCRIPTION_DELETED:
                logger.warning(f"⚠️ No billing account found for deleted subscription {subscription_id}")
                return None
            account = BillingAccount(salon_id=salon_id)

        status = "canceled" if event_type == SUBSCRIPTION_DELETED else subscription.get("status")
        fields = {
            "subscription_id": subscription_id or account.subscription_id,
            "subscription_item_id": _subscription_item_id(subscription) or account.subscription_item_id,
            "stripe_customer_id": _customer_id(subscription) or account.stripe_customer_id,
            "status": status or account.status,
        }

        try:
            account = self.repo.save_billing_account(self.db, account, **fields)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save billing account for subscription {subscription_id}: {e}")
            raise

        logger.info(f"✅ Billing account for salon {account.salon_id} is now {account.status}")
        return account
