"""
Course catalogue routes
"""
from fastapi import APIRouter, HTTPException, status, Depends, Query
from typing import Optional, List
import logging

from auth.dependencies import get_current_user_optional
from config.course_catalog import CATEGORIES, LEVELS
from models.course import Course, CourseListResponse
from services.billing_provider import get_billing_service, BillingService
from services.course_service import list_courses, get_course
from services.plan_access import evaluate_access, effective_plan

router = APIRouter(prefix="/courses", tags=["Courses"])
logger = logging.getLogger(__name__)

async def get_viewer_subscription(
    current_user: Optional[dict] = Depends(get_current_user_optional),
    billing_service: BillingService = Depends(get_billing_service),
):
    """Subscription of the caller; None for anonymous visitors."""
    if current_user is None:
        return None
    return await billing_service.get_subscription(current_user["id"])

@router.get("", response_model=CourseListResponse)
async def get_courses(
    search: Optional[str] = Query(default=None, max_length=100),
    category: Optional[str] = Query(default=None),
    level: Optional[str] = Query(default=None),
    subscription=Depends(get_viewer_subscription),
):
    """
    List courses, filtered by search text, category and level
    """
    current_plan = effective_plan(subscription)
    courses = list_courses(current_plan, search=search, category=category, level=level)
    return CourseListResponse(
        courses=courses,
        total=len(courses),
        current_plan=current_plan,
        search=search,
        category=category,
        level=level,
    )

@router.get("/categories", response_model=List[str])
async def get_categories():
    return CATEGORIES

@router.get("/levels", response_model=List[str])
async def get_levels():
    return LEVELS

@router.get("/{course_id}", response_model=Course)
async def get_course_detail(
    course_id: str,
    subscription=Depends(get_viewer_subscription),
):
    """
    Get a course if the caller's plan includes it
    """
    course = get_course(course_id)
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found"
        )

    access = evaluate_access(subscription, course.required_plan if course.is_premium else None)
    if not access.has_access:
        logger.info(f"Access to course {course_id} denied for plan {access.current_plan.value}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=access.message
        )

    return course
