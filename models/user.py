"""
User models for the course platform
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List

from models.subscription import PlanType, SubscriptionView

class UserProfile(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    bio: Optional[str] = ""

class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=1000)

class UserDashboard(BaseModel):
    profile: UserProfile
    billing: SubscriptionView
    features: List[str]
    current_plan: PlanType
