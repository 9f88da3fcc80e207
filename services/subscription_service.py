"""
Subscription records mirrored from Stripe into the Supabase subscriptions table
"""
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import logging
from supabase import Client

from config.decorators import retry_on_transient_error
from config.plan_config import plan_for_price_id
from models.subscription import Subscription, SubscriptionStatus, PlanType, BillingPeriod

logger = logging.getLogger(__name__)

# Stripe statuses outside our five-value status set
STRIPE_STATUS_MAP = {
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "paused": SubscriptionStatus.CANCELED,
}

def stripe_field(obj, key: str, default=None):
    """Read a field from a Stripe object or plain dict."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, IndexError, TypeError):
        return default
    return default if value is None else value

def normalize_status(status: Optional[str]) -> SubscriptionStatus:
    if status in STRIPE_STATUS_MAP:
        return STRIPE_STATUS_MAP[status]
    try:
        return SubscriptionStatus(status)
    except ValueError:
        logger.warning(f"Unknown Stripe subscription status {status!r}, recording as incomplete")
        return SubscriptionStatus.INCOMPLETE

def _timestamp_to_iso(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()

def _first_item(stripe_subscription):
    data = stripe_field(stripe_field(stripe_subscription, "items"), "data") or []
    return data[0] if len(data) else None

def period_bounds(stripe_subscription) -> Dict[str, Optional[str]]:
    """
    Current period of a Stripe subscription. Newer API versions carry the
    period on the subscription items rather than the subscription.
    """
    item = _first_item(stripe_subscription)
    start = stripe_field(stripe_subscription, "current_period_start", stripe_field(item, "current_period_start"))
    end = stripe_field(stripe_subscription, "current_period_end", stripe_field(item, "current_period_end"))
    return {
        "current_period_start": _timestamp_to_iso(start),
        "current_period_end": _timestamp_to_iso(end),
    }

def price_id_of(stripe_subscription) -> Optional[str]:
    return stripe_field(stripe_field(_first_item(stripe_subscription), "price"), "id")

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SubscriptionService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client

    @retry_on_transient_error
    def _latest(self, user_id: str, status: Optional[SubscriptionStatus] = None) -> Optional[Dict[str, Any]]:
        query = self.supabase.table("subscriptions").select("*").eq("user_id", user_id)
        if status is not None:
            query = query.eq("status", status.value)
        response = query.order("created_at", desc=True).limit(1).execute()
        return response.data[0] if response.data else None

    async def get_current_subscription(self, user_id: str) -> Optional[Subscription]:
        """
        Most recent subscription record for a user, whatever its status
        """
        row = self._latest(user_id)
        return Subscription(**row) if row else None

    async def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        row = self._latest(user_id, SubscriptionStatus.ACTIVE)
        return Subscription(**row) if row else None

    async def record_checkout(
        self,
        user_id: str,
        plan_type: PlanType,
        billing_period: BillingPeriod,
        stripe_subscription,
    ) -> Subscription:
        """
        Store the subscription created by a completed checkout. Any active
        subscription the user already had is marked canceled first.
        A redelivered event updates the row it created the first time.
        """
        stripe_subscription_id = stripe_field(stripe_subscription, "id")
        mirrored = {
            "plan_type": PlanType(plan_type).value,
            "billing_period": BillingPeriod(billing_period).value,
            "status": normalize_status(stripe_field(stripe_subscription, "status")).value,
            "cancel_at_period_end": bool(stripe_field(stripe_subscription, "cancel_at_period_end", False)),
            **period_bounds(stripe_subscription),
        }

        if stripe_subscription_id and self._find_by_stripe_id(stripe_subscription_id):
            logger.info(f"Checkout for Stripe subscription {stripe_subscription_id} already recorded")
            return self._update_by_stripe_id(stripe_subscription_id, {**mirrored, "updated_at": _now()})

        existing = self._latest(user_id, SubscriptionStatus.ACTIVE)
        if existing:
            logger.info(f"Marking previous subscription {existing['id']} of user {user_id} as canceled")
            self.supabase.table("subscriptions").update({
                "status": SubscriptionStatus.CANCELED.value,
                "cancel_at_period_end": True,
                "updated_at": _now(),
            }).eq("id", existing["id"]).execute()

        record = {
            "user_id": user_id,
            **mirrored,
            "stripe_subscription_id": stripe_subscription_id,
            "stripe_customer_id": stripe_field(stripe_subscription, "customer"),
            "created_at": _now(),
            "updated_at": _now(),
        }

        response = self.supabase.table("subscriptions").insert(record).execute()
        if not response.data:
            raise RuntimeError(f"Failed to store subscription for user {user_id}")

        logger.info(f"Recorded {record['plan_type']} ({record['billing_period']}) subscription for user {user_id}")
        return Subscription(**response.data[0])

    async def sync_from_stripe(self, stripe_subscription) -> Optional[Subscription]:
        """
        Mirror status, billing period and cancellation flag of a Stripe subscription.
        """
        update_data = {
            "status": normalize_status(stripe_field(stripe_subscription, "status")).value,
            "cancel_at_period_end": bool(stripe_field(stripe_subscription, "cancel_at_period_end", False)),
            "updated_at": _now(),
            **period_bounds(stripe_subscription),
        }

        # Plan changes made in the billing portal arrive as a new price
        plan = plan_for_price_id(price_id_of(stripe_subscription))
        if plan:
            update_data["plan_type"], update_data["billing_period"] = plan[0].value, plan[1].value

        return self._update_by_stripe_id(stripe_field(stripe_subscription, "id"), update_data)

    async def mark_renewed(self, stripe_subscription) -> Optional[Subscription]:
        """
        Move the period forward after a paid invoice. The status is taken
        from Stripe, so a late invoice cannot revive a deleted subscription.
        """
        update_data = {
            "status": normalize_status(stripe_field(stripe_subscription, "status")).value,
            "cancel_at_period_end": bool(stripe_field(stripe_subscription, "cancel_at_period_end", False)),
            "updated_at": _now(),
            **period_bounds(stripe_subscription),
        }
        return self._update_by_stripe_id(stripe_field(stripe_subscription, "id"), update_data)

    async def mark_canceled(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return self._update_by_stripe_id(stripe_subscription_id, {
            "status": SubscriptionStatus.CANCELED.value,
            "cancel_at_period_end": True,
            "updated_at": _now(),
        })

    async def mark_status(self, stripe_subscription_id: str, status: Optional[str]) -> Optional[Subscription]:
        return self._update_by_stripe_id(stripe_subscription_id, {
            "status": normalize_status(status).value,
            "updated_at": _now(),
        })

    @retry_on_transient_error
    def _find_by_stripe_id(self, stripe_subscription_id: str) -> Optional[Dict[str, Any]]:
        response = self.supabase.table("subscriptions").select("*").eq(
            "stripe_subscription_id", stripe_subscription_id
        ).limit(1).execute()
        return response.data[0] if response.data else None

    def _update_by_stripe_id(self, stripe_subscription_id: Optional[str], update_data: Dict[str, Any]) -> Optional[Subscription]:
        if not stripe_subscription_id:
            logger.warning("Subscription update without a Stripe subscription id ignored")
            return None

        response = self.supabase.table("subscriptions").update(update_data).eq(
            "stripe_subscription_id", stripe_subscription_id
        ).execute()

        if not response.data:
            logger.warning(f"No subscription record for Stripe subscription {stripe_subscription_id}")
            return None

        logger.info(f"Updated subscription {stripe_subscription_id}: status={update_data.get('status')}")
        return Subscription(**response.data[0])

    @retry_on_transient_error
    def get_customer_id(self, user_id: str) -> Optional[str]:
        response = self.supabase.table("customer_info").select("stripe_customer_id").eq("id", user_id).limit(1).execute()
        if response.data and response.data[0].get("stripe_customer_id"):
            return response.data[0]["stripe_customer_id"]
        return None

    def save_customer_id(self, user_id: str, customer_id: str) -> None:
        self.supabase.table("customer_info").insert({
            "id": user_id,
            "stripe_customer_id": customer_id,
        }).execute()
