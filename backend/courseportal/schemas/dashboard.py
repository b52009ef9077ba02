"""
Dashboard metric schemas.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class DashboardTotals(BaseModel):
    customers: int = 0
    active_customers: int = 0
    inactive_customers: int = 0
    users: int = 0
    courses: int = 0
    completed_courses: int = 0


class WeeklyBucket(BaseModel):
    label: str
    start: datetime
    end: datetime
    new_customers: int = 0
    new_users: int = 0
    completed_courses: int = 0


class DashboardMetrics(BaseModel):
    totals: DashboardTotals = Field(default_factory=DashboardTotals)
    weekly: List[WeeklyBucket] = Field(default_factory=list)
