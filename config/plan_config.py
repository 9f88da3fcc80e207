# config/plan_config.py

import os
from typing import Dict, Any, List, Optional, Tuple

from models.subscription import PlanType, BillingPeriod, SubscriptionStatus

PLAN_LEVELS: Dict[PlanType, int] = {
    PlanType.FREE: 0,
    PlanType.STANDARD: 1,
    PlanType.FEEDBACK: 2,
}

# Minimum plan needed for each gated feature
PLAN_FEATURE_ACCESS: Dict[str, PlanType] = {
    "view_courses": PlanType.FREE,
    "view_basic_content": PlanType.FREE,
    "community_access": PlanType.FREE,

    "premium_courses": PlanType.STANDARD,
    "practice_questions": PlanType.STANDARD,
    "progress_tracking": PlanType.STANDARD,
    "full_content_access": PlanType.STANDARD,

    "individual_feedback": PlanType.FEEDBACK,
    "assignment_review": PlanType.FEEDBACK,
    "priority_support": PlanType.FEEDBACK,
    "group_qa_sessions": PlanType.FEEDBACK,
}

QUARTERLY_DISCOUNT_PERCENT = 15

PLAN_DISPLAY_NAMES: Dict[PlanType, str] = {
    PlanType.FREE: "Free plan",
    PlanType.STANDARD: "Standard plan",
    PlanType.FEEDBACK: "Feedback plan",
}

PERIOD_DISPLAY_NAMES: Dict[BillingPeriod, str] = {
    BillingPeriod.MONTHLY: "Monthly",
    BillingPeriod.QUARTERLY: "Every 3 months",
}

STATUS_DISPLAY_INFO: Dict[SubscriptionStatus, Dict[str, str]] = {
    SubscriptionStatus.ACTIVE: {"label": "Active", "color": "success"},
    SubscriptionStatus.TRIALING: {"label": "Trial", "color": "success"},
    SubscriptionStatus.CANCELED: {"label": "Canceled", "color": "warning"},
    SubscriptionStatus.INCOMPLETE: {"label": "Incomplete", "color": "warning"},
    SubscriptionStatus.PAST_DUE: {"label": "Payment overdue", "color": "destructive"},
}

PLAN_DESCRIPTIONS: Dict[PlanType, str] = {
    PlanType.FREE: "Try the basics for free",
    PlanType.STANDARD: "Access to the core learning content",
    PlanType.FEEDBACK: "Premium plan with individual feedback",
}

# Environment variable holding the Stripe price id for each plan/period
PRICE_ENV_VARS: Dict[Tuple[PlanType, BillingPeriod], str] = {
    (PlanType.STANDARD, BillingPeriod.MONTHLY): "STRIPE_PRICE_STANDARD_MONTHLY",
    (PlanType.STANDARD, BillingPeriod.QUARTERLY): "STRIPE_PRICE_STANDARD_QUARTERLY",
    (PlanType.FEEDBACK, BillingPeriod.MONTHLY): "STRIPE_PRICE_FEEDBACK_MONTHLY",
    (PlanType.FEEDBACK, BillingPeriod.QUARTERLY): "STRIPE_PRICE_FEEDBACK_QUARTERLY",
}


def get_plan_prices() -> Dict[PlanType, Dict[str, int]]:
    """Prices in JPY per billing period."""
    return {
        PlanType.FREE: {"monthly": 0, "quarterly": 0},
        PlanType.STANDARD: {"monthly": 2980, "quarterly": 7590},
        PlanType.FEEDBACK: {"monthly": 4980, "quarterly": 12699},
    }


def get_plan_features() -> Dict[PlanType, List[str]]:
    standard_features = [
        "Access to all learning content",
        "On-demand video lessons",
        "Progress tracking",
        "Practice questions and quizzes",
        "Community forum access",
    ]
    feedback_features = standard_features + [
        "Individual feedback (up to 3 times a month)",
        "Assignment review",
        "Priority answers to questions",
        "Monthly group Q&A session",
    ]
    return {
        PlanType.FREE: ["Free content", "Sample lessons", "Read-only community forum"],
        PlanType.STANDARD: standard_features,
        PlanType.FEEDBACK: feedback_features,
    }


def get_stripe_price_id(plan_type: PlanType, billing_period: BillingPeriod) -> Optional[str]:
    """Get the configured Stripe price id, or None for the free plan and unconfigured prices."""
    env_var = PRICE_ENV_VARS.get((PlanType(plan_type), BillingPeriod(billing_period)))
    if not env_var:
        return None
    return os.getenv(env_var) or None


def plan_for_price_id(price_id: Optional[str]) -> Optional[Tuple[PlanType, BillingPeriod]]:
    if not price_id:
        return None
    for (plan_type, billing_period), env_var in PRICE_ENV_VARS.items():
        if os.getenv(env_var) == price_id:
            return plan_type, billing_period
    return None


def get_plan_catalog() -> List[Dict[str, Any]]:
    """Plans offered on the pricing page, free plan first."""
    prices = get_plan_prices()
    features = get_plan_features()
    catalog = []
    for plan_type in PLAN_LEVELS:
        catalog.append({
            "id": plan_type,
            "name": PLAN_DISPLAY_NAMES[plan_type],
            "description": PLAN_DESCRIPTIONS[plan_type],
            "features": features[plan_type],
            "prices": prices[plan_type],
            "currency": "JPY",
            "configured": {
                period.value: get_stripe_price_id(plan_type, period) is not None
                for period in BillingPeriod
            } if plan_type != PlanType.FREE else {},
        })
    return catalog


def get_status_display(status: SubscriptionStatus) -> Dict[str, str]:
    return STATUS_DISPLAY_INFO.get(status, {"label": str(status), "color": "default"})
