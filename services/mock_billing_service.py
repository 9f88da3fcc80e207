"""
In-memory billing for local development without Stripe
"""
import os
import uuid
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any

from fastapi import HTTPException, status

from models.subscription import PlanType, BillingPeriod, Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

PERIOD_MONTHS = {BillingPeriod.MONTHLY: 1, BillingPeriod.QUARTERLY: 3}

def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the end of a shorter month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot add {months} months to {value}")

def _fake_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:9]}"


class MockBillingService:
    """
    Mirrors the StripeService interface. Checkout activates the plan
    immediately since there is no payment step.
    """

    def __init__(self):
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self._subscriptions: Dict[str, Subscription] = {}

    async def get_subscription(self, user_id: str) -> Optional[Subscription]:
        subscription = self._subscriptions.get(user_id)
        if subscription and subscription.status != SubscriptionStatus.CANCELED:
            return subscription
        return None

    async def create_checkout_session(
        self,
        user: Dict[str, Any],
        plan_type: PlanType,
        billing_period: BillingPeriod,
        return_url: Optional[str] = None,
    ) -> str:
        if PlanType(plan_type) == PlanType.FREE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The free plan does not require checkout"
            )

        now = datetime.now(timezone.utc)
        subscription = Subscription(
            id=_fake_id("sub"),
            user_id=user["id"],
            plan_type=plan_type,
            billing_period=billing_period,
            status=SubscriptionStatus.ACTIVE,
            current_period_start=now,
            current_period_end=add_months(now, PERIOD_MONTHS[BillingPeriod(billing_period)]),
            cancel_at_period_end=False,
            stripe_customer_id=_fake_id("cus"),
            stripe_subscription_id=_fake_id("sub"),
            created_at=now,
            updated_at=now,
        )
        # One subscription per user; a new checkout replaces the old one
        self._subscriptions[user["id"]] = subscription

        logger.info(f"Mock subscription {subscription.id} created for user {user['id']}, plan: {plan_type}/{billing_period}")
        return f"{return_url or self.frontend_url}/account?success=true&mock=true"

    async def create_portal_session(self, user_id: str, return_url: Optional[str] = None) -> str:
        return f"{return_url or self.frontend_url}/account?portal=true&user={user_id}"

    async def cancel_subscription(self, user_id: str) -> Subscription:
        subscription = await self.get_subscription(user_id)
        if not subscription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No active subscription"
            )

        subscription = subscription.model_copy(update={
            "cancel_at_period_end": True,
            "updated_at": datetime.now(timezone.utc),
        })
        self._subscriptions[user_id] = subscription
        logger.info(f"Mock subscription {subscription.id} of user {user_id} set to cancel at period end")
        return subscription

    async def handle_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Webhooks are not available in mock billing mode"
        )
