"""
Plan-restricted content routes
"""
from fastapi import APIRouter, Depends
import logging

from auth.dependencies import RequireStandardPlan, RequireFeedbackPlan
from config.plan_config import PLAN_FEATURE_ACCESS, PLAN_DISPLAY_NAMES
from models.subscription import PlanType

router = APIRouter(prefix="/premium", tags=["Premium"])
logger = logging.getLogger(__name__)

def _features_for(plan_type: PlanType):
    return [feature for feature, required in PLAN_FEATURE_ACCESS.items() if required == plan_type]

@router.get("/standard")
async def get_standard_content(current_user: dict = Depends(RequireStandardPlan)):
    """
    Content unlocked by the standard plan
    """
    return {
        "plan": PlanType.STANDARD,
        "plan_name": PLAN_DISPLAY_NAMES[PlanType.STANDARD],
        "features": _features_for(PlanType.STANDARD),
    }

@router.get("/feedback")
async def get_feedback_content(current_user: dict = Depends(RequireFeedbackPlan)):
    """
    Individual feedback and review features of the feedback plan
    """
    logger.info(f"Feedback content opened by user {current_user['id']}")
    return {
        "plan": PlanType.FEEDBACK,
        "plan_name": PLAN_DISPLAY_NAMES[PlanType.FEEDBACK],
        "features": _features_for(PlanType.FEEDBACK),
    }
