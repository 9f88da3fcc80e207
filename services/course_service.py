"""
Course catalogue queries with plan gating
"""
from typing import List, Optional

from config.course_catalog import COURSES, ALL
from models.course import Course, CourseListItem
from models.subscription import PlanType
from services.plan_access import has_access

def _is_filter(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != ALL

def list_courses(
    current_plan: PlanType = PlanType.FREE,
    search: Optional[str] = None,
    category: Optional[str] = None,
    level: Optional[str] = None,
) -> List[CourseListItem]:
    courses = [Course(**data) for data in COURSES]

    if search and search.strip():
        query = search.strip().lower()
        courses = [
            course for course in courses
            if query in course.title.lower()
            or query in course.instructor.lower()
            or query in course.category.lower()
        ]

    if _is_filter(category):
        courses = [course for course in courses if course.category.lower() == category.strip().lower()]

    if _is_filter(level):
        courses = [course for course in courses if course.level.lower() == level.strip().lower()]

    return [
        CourseListItem(**course.model_dump(), locked=not has_access(current_plan, course.required_plan))
        for course in courses
    ]

def get_course(course_id: str) -> Optional[Course]:
    for data in COURSES:
        if data["id"] == course_id:
            return Course(**data)
    return None
