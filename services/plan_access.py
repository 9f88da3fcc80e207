"""
Plan-based access control for the course platform
"""
from typing import Optional, Union

from config.plan_config import PLAN_LEVELS, PLAN_FEATURE_ACCESS, PLAN_DISPLAY_NAMES
from models.subscription import PlanType, PlanAccess, Subscription, SubscriptionStatus

# Statuses under which a subscription grants its plan
ENTITLED_STATUSES = {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}

def plan_rank(plan: Optional[Union[PlanType, str]]) -> int:
    """Numeric level of a plan; unknown or missing plans rank as free."""
    try:
        return PLAN_LEVELS[PlanType(plan)]
    except ValueError:
        return PLAN_LEVELS[PlanType.FREE]

def has_access(current_plan: Optional[Union[PlanType, str]], required_plan: Optional[Union[PlanType, str]] = None) -> bool:
    if required_plan is None:
        return True
    return plan_rank(current_plan) >= plan_rank(required_plan)

def effective_plan(subscription: Optional[Subscription]) -> PlanType:
    if subscription is None or subscription.status not in ENTITLED_STATUSES:
        return PlanType.FREE
    return subscription.plan_type

def required_plan_for_feature(feature: str) -> Optional[PlanType]:
    return PLAN_FEATURE_ACCESS.get(feature)

def evaluate_access(subscription: Optional[Subscription], required_plan: Optional[PlanType] = None) -> PlanAccess:
    """
    Check a user's subscription against a required plan and build the
    message shown when access is denied.
    """
    current_plan = effective_plan(subscription)
    is_subscribed = current_plan != PlanType.FREE
    allowed = has_access(current_plan, required_plan)

    message = None
    if not allowed:
        plan_name = PLAN_DISPLAY_NAMES[PlanType(required_plan)]
        if is_subscribed:
            message = f"Upgrade to the {plan_name} or higher to use this feature."
        else:
            message = f"This feature requires a subscription to the {plan_name} or higher."

    return PlanAccess(
        has_access=allowed,
        current_plan=current_plan,
        required_plan=required_plan,
        is_subscribed=is_subscribed,
        message=message,
    )
