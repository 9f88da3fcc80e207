"""
Subscription models for the course platform
"""
from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum

class PlanType(str, Enum):
    FREE = "free"
    STANDARD = "standard"
    FEEDBACK = "feedback"

class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INCOMPLETE = "incomplete"
    TRIALING = "trialing"

class Subscription(BaseModel):
    id: str
    user_id: str
    plan_type: PlanType
    billing_period: BillingPeriod
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CheckoutRequest(BaseModel):
    plan_type: PlanType
    billing_period: BillingPeriod
    return_url: Optional[str] = None

class PortalRequest(BaseModel):
    return_url: Optional[str] = None

class SessionUrlResponse(BaseModel):
    url: str

class StatusLabel(BaseModel):
    label: str
    color: str

class SubscriptionView(BaseModel):
    """
    Subscription as shown on the account dashboard.
    """
    subscription: Optional[Subscription] = None
    current_plan: PlanType = PlanType.FREE
    is_subscribed: bool = False
    plan_name: str
    period_name: Optional[str] = None
    status_label: Optional[StatusLabel] = None

class CancelResponse(BaseModel):
    message: str
    subscription: Subscription

class PlanAccess(BaseModel):
    has_access: bool
    current_plan: PlanType
    required_plan: Optional[PlanType] = None
    is_subscribed: bool = False
    message: Optional[str] = None

class PlanPrices(BaseModel):
    monthly: int
    quarterly: int

class PlanInfo(BaseModel):
    id: PlanType
    name: str
    description: str
    features: List[str]
    prices: PlanPrices
    currency: str = "JPY"
    configured: Dict[str, bool] = {}

class PlanCatalogResponse(BaseModel):
    plans: List[PlanInfo]
    quarterly_discount_percent: int
