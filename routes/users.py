"""
Profile and account dashboard routes
"""
from fastapi import APIRouter, HTTPException, status, Depends
import logging

from auth.dependencies import get_current_user
from auth.middleware import get_auth_middleware
from config.plan_config import get_plan_features
from models.user import UserProfile, UserUpdate, UserDashboard
from routes.billing import build_subscription_view
from services.billing_provider import get_billing_service, BillingService
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

def get_user_service() -> UserService:
    return UserService(get_auth_middleware().supabase)

@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(current_user: dict = Depends(get_current_user)):
    """
    Get current user profile
    """
    return UserProfile(**current_user)

@router.put("/me", response_model=UserProfile)
async def update_current_user_profile(
    update_data: UserUpdate,
    current_user: dict = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
):
    """
    Update name and bio of the current user
    """
    update_fields = {}
    if update_data.name is not None:
        if not update_data.name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Name must not be empty"
            )
        update_fields["name"] = update_data.name.strip()
    if update_data.bio is not None:
        update_fields["bio"] = update_data.bio

    if not update_fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    try:
        profile = await user_service.update_profile(current_user["id"], update_fields)
    except Exception as e:
        logger.error(f"Update profile error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found"
        )

    logger.info(f"Profile updated: {current_user['id']}")
    return UserProfile(id=current_user["id"], email=current_user["email"], name=profile.get("name"), bio=profile.get("bio") or "")

@router.get("/me/dashboard", response_model=UserDashboard)
async def get_dashboard(
    current_user: dict = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
):
    """
    Profile, subscription and plan features for the account page
    """
    try:
        subscription = await billing_service.get_subscription(current_user["id"])
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Dashboard subscription lookup error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load subscription"
        )

    billing = build_subscription_view(subscription)
    return UserDashboard(
        profile=UserProfile(**current_user),
        billing=billing,
        features=get_plan_features()[billing.current_plan],
        current_plan=billing.current_plan,
    )
