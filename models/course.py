"""
Course catalogue models
"""
from pydantic import BaseModel
from typing import List, Optional

from models.subscription import PlanType

class Course(BaseModel):
    id: str
    title: str
    instructor: str
    category: str
    image: str
    duration: str
    level: str
    required_plan: PlanType = PlanType.FREE

    @property
    def is_premium(self) -> bool:
        return self.required_plan != PlanType.FREE

class CourseListItem(Course):
    locked: bool = False

class CourseListResponse(BaseModel):
    courses: List[CourseListItem]
    total: int
    current_plan: PlanType
    search: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
