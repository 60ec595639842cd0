"""
Timesheet Schemas - per-day and per-month summaries
"""
from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class DayTimesheet(BaseModel):
    day: int = Field(ge=1, le=31)
    first_start: Optional[datetime] = None
    last_end: Optional[datetime] = None
    first_start_local: Optional[str] = None  # "HH:MM"
    last_end_local: Optional[str] = None  # "HH:MM"
    minutes: int = Field(default=0, ge=0)


class MonthTimesheet(BaseModel):
    """Always 31 day slots; days past the month's length stay zero"""
    employee_id: int
    project_id: Optional[int] = None
    month: str  # "YYYY-MM"
    timezone: str
    days: List[DayTimesheet]
    total_minutes: int = 0


class AvailableMonthsResponse(BaseModel):
    months: List[str]


class AnomalyCountsResponse(BaseModel):
    counts: Dict[str, int]
