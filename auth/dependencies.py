"""
Authentication and plan-gating dependencies
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from .middleware import get_auth_middleware
from models.subscription import PlanType
from services.billing_provider import get_billing_service, BillingService
from services.plan_access import evaluate_access

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """
    Get current authenticated user
    """
    auth_middleware = get_auth_middleware()
    return await auth_middleware.verify_token(credentials)

async def get_current_user_optional(credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)) -> Optional[dict]:
    """
    Get current user if authenticated, otherwise return None
    """
    if not credentials:
        return None

    try:
        auth_middleware = get_auth_middleware()
        return await auth_middleware.verify_token(credentials)
    except HTTPException:
        return None

def require_plan(required_plan: PlanType):
    async def _require_plan(
        user: dict = Depends(get_current_user),
        billing_service: BillingService = Depends(get_billing_service),
    ):
        subscription = await billing_service.get_subscription(user["id"])
        access = evaluate_access(subscription, required_plan)
        if not access.has_access:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=access.message,
            )
        return user
    return _require_plan

# Convenience dependencies
RequireStandardPlan = require_plan(PlanType.STANDARD)
RequireFeedbackPlan = require_plan(PlanType.FEEDBACK)
