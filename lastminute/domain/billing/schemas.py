"""Billing schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

UsageType = Literal["booking", "consultation"]


class UsageMetricResponse(BaseModel):
    id: str
    salonId: str
    type: str
    requestId: str
    userId: str
    timestamp: Optional[datetime] = None


class UsageSummaryResponse(BaseModel):
    salonId: str
    totalRequests: int
    bookingCount: int
    consultationCount: int
    lastUpdated: Optional[datetime] = None
    recent: list[UsageMetricResponse] = []


class MonthlyUsageResponse(BaseModel):
    salonId: str
    year: int
    month: int
    totalRequests: int
    bookingCount: int
    consultationCount: int
    metrics: list[UsageMetricResponse]
