"""
Stripe billing service for course platform subscriptions
"""
import stripe
import os
from typing import Optional, Dict, Any
import logging
from fastapi import HTTPException, status
from supabase import Client

from config.plan_config import get_stripe_price_id
from models.subscription import PlanType, BillingPeriod, Subscription, SubscriptionStatus
from services.subscription_service import SubscriptionService, stripe_field

logger = logging.getLogger(__name__)

# Initialize Stripe
stripe.api_key = os.getenv("STRIPE_SECRET_KEY")

class StripeService:
    def __init__(self, supabase_client: Client):
        self.supabase = supabase_client
        self.subscriptions = SubscriptionService(supabase_client)
        self.webhook_secret = os.getenv("STRIPE_WEBHOOK_SECRET")
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.quarterly_coupon = os.getenv("STRIPE_QUARTERLY_COUPON")

    async def get_subscription(self, user_id: str) -> Optional[Subscription]:
        return await self.subscriptions.get_current_subscription(user_id)

    async def get_or_create_customer(self, user_id: str, email: str) -> str:
        """
        Get the user's Stripe customer id, creating the customer on first checkout
        """
        customer_id = self.subscriptions.get_customer_id(user_id)
        if customer_id:
            return customer_id

        customer = stripe.Customer.create(
            email=email,
            metadata={"user_id": user_id}
        )
        self.subscriptions.save_customer_id(user_id, customer.id)

        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return customer.id

    async def create_checkout_session(
        self,
        user: Dict[str, Any],
        plan_type: PlanType,
        billing_period: BillingPeriod,
        return_url: Optional[str] = None,
    ) -> str:
        """
        Create Stripe checkout session for a paid plan
        """
        if PlanType(plan_type) == PlanType.FREE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The free plan does not require checkout"
            )

        price_id = get_stripe_price_id(plan_type, billing_period)
        if not price_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Plan not configured"
            )

        base_url = return_url or self.frontend_url
        try:
            customer_id = await self.get_or_create_customer(user["id"], user["email"])

            session_params: Dict[str, Any] = {
                "customer": customer_id,
                "mode": "subscription",
                "line_items": [{
                    "price": price_id,
                    "quantity": 1,
                }],
                "metadata": {
                    "user_id": user["id"],
                    "plan_type": PlanType(plan_type).value,
                    "billing_period": BillingPeriod(billing_period).value,
                },
                "success_url": f"{base_url}/account?success=true&session_id={{CHECKOUT_SESSION_ID}}",
                "cancel_url": f"{base_url}/pricing?canceled=true",
            }
            if BillingPeriod(billing_period) == BillingPeriod.QUARTERLY and self.quarterly_coupon:
                session_params["discounts"] = [{"coupon": self.quarterly_coupon}]

            session = stripe.checkout.Session.create(**session_params)

        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Payment provider error: {e.user_message or str(e)}"
            )

        logger.info(f"Created checkout session {session.id} for user {user['id']}, plan: {plan_type}/{billing_period}")
        return session.url

    async def create_portal_session(self, user_id: str, return_url: Optional[str] = None) -> str:
        """
        Create Stripe customer portal session
        """
        customer_id = self.subscriptions.get_customer_id(user_id)
        if not customer_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No billing account found"
            )

        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url or f"{self.frontend_url}/account"
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating portal session: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Payment provider error: {e.user_message or str(e)}"
            )

        logger.info(f"Created portal session for user {user_id}")
        return session.url

    async def cancel_subscription(self, user_id: str) -> Subscription:
        """
        Cancel the user's subscription at the end of the current period.
        Stripe keeps it active until then; the deletion webhook marks it canceled.
        """
        current = await self.subscriptions.get_current_subscription(user_id)
        if not current or current.status == SubscriptionStatus.CANCELED or not current.stripe_subscription_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No active subscription"
            )

        try:
            stripe_subscription = stripe.Subscription.modify(
                current.stripe_subscription_id,
                cancel_at_period_end=True
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error canceling subscription {current.stripe_subscription_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Payment provider error: {e.user_message or str(e)}"
            )

        updated = await self.subscriptions.sync_from_stripe(stripe_subscription)
        logger.info(f"Subscription {current.stripe_subscription_id} of user {user_id} set to cancel at period end")
        return updated or current.model_copy(update={"cancel_at_period_end": True})

    async def handle_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a Stripe webhook and mirror the event into the subscriptions table
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not set; rejecting webhook")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")
        except ValueError as e:
            logger.error(f"Webhook payload could not be parsed: {str(e)}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

        event_type = event["type"]
        data_object = event["data"]["object"]
        logger.info(f"Processing webhook event: {event_type}")

        if event_type == "checkout.session.completed":
            await self._handle_checkout_completed(data_object)

        elif event_type == "customer.subscription.updated":
            await self.subscriptions.sync_from_stripe(data_object)

        elif event_type == "customer.subscription.deleted":
            await self.subscriptions.mark_canceled(stripe_field(data_object, "id"))

        elif event_type == "invoice.payment_succeeded":
            await self._handle_payment_succeeded(data_object)

        elif event_type == "invoice.payment_failed":
            await self._handle_payment_failed(data_object)

        else:
            logger.info(f"Unhandled webhook event type: {event_type}")

        return {"received": True, "event_type": event_type}

    async def _handle_checkout_completed(self, session):
        metadata = stripe_field(session, "metadata") or {}
        user_id = stripe_field(metadata, "user_id")
        plan_type = stripe_field(metadata, "plan_type")
        billing_period = stripe_field(metadata, "billing_period")
        subscription_id = stripe_field(session, "subscription")

        if not user_id or not plan_type or not billing_period or not subscription_id:
            logger.error(f"Checkout session {stripe_field(session, 'id')} is missing subscription metadata")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Checkout session metadata is incomplete"
            )

        subscription = stripe.Subscription.retrieve(subscription_id)
        await self.subscriptions.record_checkout(
            user_id,
            PlanType(plan_type),
            BillingPeriod(billing_period),
            subscription
        )
        logger.info(f"Checkout completed for user {user_id}, plan: {plan_type}, period: {billing_period}")

    async def _handle_payment_succeeded(self, invoice):
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return

        # Renewal moves the billing period forward
        subscription = stripe.Subscription.retrieve(subscription_id)
        await self.subscriptions.mark_renewed(subscription)
        logger.info(f"Payment succeeded for subscription {subscription_id}")

    async def _handle_payment_failed(self, invoice):
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return

        subscription = stripe.Subscription.retrieve(subscription_id)
        await self.subscriptions.mark_status(subscription_id, stripe_field(subscription, "status"))
        logger.info(f"Payment failed for subscription {subscription_id}")


def _invoice_subscription_id(invoice) -> Optional[str]:
    """Subscription of an invoice; newer API versions nest it under parent.subscription_details."""
    subscription_id = stripe_field(invoice, "subscription")
    if subscription_id:
        return subscription_id if isinstance(subscription_id, str) else stripe_field(subscription_id, "id")
    details = stripe_field(stripe_field(invoice, "parent"), "subscription_details")
    return stripe_field(details, "subscription")
