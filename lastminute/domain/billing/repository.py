"""Billing repository - Database operations for usage metrics and billing accounts"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import BillingAccount, UsageMetric


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def create_usage_metric(
        db: Session, salon_id: str, type: str, request_id: str, user_id: str
    ) -> UsageMetric:
        metric = UsageMetric(salon_id=salon_id, type=type, request_id=request_id, user_id=user_id)
        db.add(metric)
        db.commit()
        db.refresh(metric)
        return metric

    @staticmethod
    def get_usage_metrics(
        db: Session,
        salon_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[UsageMetric]:
        """Usage metrics for a salon, newest first, optionally bounded by date"""
        query = db.query(UsageMetric).filter(UsageMetric.salon_id == salon_id)
        if start is not None:
            query = query.filter(UsageMetric.timestamp >= start)
        if end is not None:
            query = query.filter(UsageMetric.timestamp <= end)
        query = query.order_by(UsageMetric.timestamp.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_active_billing_account(db: Session, salon_id: str) -> Optional[BillingAccount]:
        return (
            db.query(BillingAccount)
            .filter(BillingAccount.salon_id == salon_id, BillingAccount.status == "active")
            .first()
        )

    @staticmethod
    def set_subscription_item(
        db: Session, account: BillingAccount, subscription_item_id: str
    ) -> BillingAccount:
        account.subscription_item_id = subscription_item_id
        db.commit()
        db.refresh(account)
        return account

    @staticmethod
    def get_billing_account_by_subscription(
        db: Session, subscription_id: str
    ) -> Optional[BillingAccount]:
        return (
            db.query(BillingAccount)
            .filter(BillingAccount.subscription_id == subscription_id)
            .first()
        )

    @staticmethod
    def get_billing_account_for_salon(db: Session, salon_id: str) -> Optional[BillingAccount]:
        return (
            db.query(BillingAccount)
            .filter(BillingAccount.salon_id == salon_id)
            .order_by(BillingAccount.created_at.desc())
            .first()
        )

    @staticmethod
    def save_billing_account(db: Session, account: BillingAccount, **fields) -> BillingAccount:
        """Insert or update a billing account with the given column values"""
        for key, value in fields.items():
            setattr(account, key, value)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
