"""
Billing routes for course plan subscriptions
"""
from fastapi import APIRouter, HTTPException, status, Depends, Request, Query
from typing import Optional
import logging

from auth.dependencies import get_current_user
from config.plan_config import (
    get_plan_catalog,
    get_status_display,
    PLAN_DISPLAY_NAMES,
    PERIOD_DISPLAY_NAMES,
    QUARTERLY_DISCOUNT_PERCENT,
)
from models.subscription import (
    CheckoutRequest,
    PortalRequest,
    SessionUrlResponse,
    SubscriptionView,
    CancelResponse,
    PlanAccess,
    PlanType,
    PlanCatalogResponse,
    Subscription,
)
from services.billing_provider import get_billing_service, BillingService
from services.plan_access import evaluate_access, effective_plan, required_plan_for_feature

router = APIRouter(prefix="/billing", tags=["Billing"])
logger = logging.getLogger(__name__)

def build_subscription_view(subscription: Optional[Subscription]) -> SubscriptionView:
    current_plan = effective_plan(subscription)
    if subscription is None:
        return SubscriptionView(plan_name=PLAN_DISPLAY_NAMES[current_plan])

    return SubscriptionView(
        subscription=subscription,
        current_plan=current_plan,
        is_subscribed=current_plan != PlanType.FREE,
        plan_name=PLAN_DISPLAY_NAMES[subscription.plan_type],
        period_name=PERIOD_DISPLAY_NAMES[subscription.billing_period],
        status_label=get_status_display(subscription.status),
    )

async def _load_subscription(billing_service: BillingService, user_id: str) -> Optional[Subscription]:
    try:
        return await billing_service.get_subscription(user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting subscription for user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get subscription details"
        )

@router.get("/plans", response_model=PlanCatalogResponse)
async def get_available_plans():
    """
    Get available plans with pricing
    """
    return {
        "plans": get_plan_catalog(),
        "quarterly_discount_percent": QUARTERLY_DISCOUNT_PERCENT,
    }

@router.get("/subscription", response_model=SubscriptionView)
async def get_subscription_details(
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Get current user's subscription details
    """
    subscription = await _load_subscription(billing_service, current_user["id"])
    return build_subscription_view(subscription)

@router.post("/checkout", response_model=SessionUrlResponse)
async def create_checkout_session(
    request: CheckoutRequest,
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Create a checkout session for a paid plan
    """
    try:
        checkout_url = await billing_service.create_checkout_session(
            current_user,
            request.plan_type,
            request.billing_period,
            request.return_url,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Checkout creation error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session"
        )

    logger.info(f"Created checkout session for user {current_user['id']}, plan: {request.plan_type.value}")
    return SessionUrlResponse(url=checkout_url)

@router.post("/portal", response_model=SessionUrlResponse)
async def create_portal_session(
    request: Optional[PortalRequest] = None,
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Create a customer portal session
    """
    return_url = request.return_url if request else None
    try:
        portal_url = await billing_service.create_portal_session(current_user["id"], return_url)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Portal creation error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal session"
        )

    return SessionUrlResponse(url=portal_url)

@router.post("/cancel", response_model=CancelResponse)
async def cancel_subscription(
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Cancel the current subscription at the end of the billing period
    """
    try:
        subscription = await billing_service.cancel_subscription(current_user["id"])
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Cancel subscription error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel subscription"
        )

    return CancelResponse(
        message="Your subscription will be canceled at the end of the current period",
        subscription=subscription,
    )

@router.get("/access", response_model=PlanAccess)
async def check_plan_access(
    required_plan: Optional[PlanType] = Query(default=None),
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    subscription = await _load_subscription(billing_service, current_user["id"])
    return evaluate_access(subscription, required_plan)

@router.get("/access/{feature}", response_model=PlanAccess)
async def check_feature_access(
    feature: str,
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    required_plan = required_plan_for_feature(feature)
    if required_plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown feature: {feature}"
        )

    subscription = await _load_subscription(billing_service, current_user["id"])
    return evaluate_access(subscription, required_plan)

@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Handle Stripe webhook events
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        return await billing_service.handle_webhook(payload, signature)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Webhook processing error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed"
        )
