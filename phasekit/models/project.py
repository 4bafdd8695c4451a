"""
Project model for phasekit.

Holds the project itself plus the calendar data that per-day estimates are
computed against: holidays, calendar events and the resulting day estimates.
"""

import datetime as dt
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from phasekit.constants import (
    VALIDATION_PROJECT_END_BEFORE_START,
    VALIDATION_PROJECT_END_REQUIRED,
)


class AutoEstimateDays(BaseModel):
    """Per-weekday mask of days that receive auto-estimated hours."""

    sunday: bool = True
    monday: bool = True
    tuesday: bool = True
    wednesday: bool = True
    thursday: bool = True
    friday: bool = True
    saturday: bool = True

    def allows(self, day_of_week: int) -> bool:
        """Return whether the weekday (0 = Sunday) is enabled."""
        names = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
        return getattr(self, names[day_of_week % 7])


class Project(BaseModel):
    """
    Project model.

    ``end_date`` is ignored for budget math when ``continuous`` is set.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    start_date: dt.date
    end_date: Optional[dt.date] = None
    estimated_hours: float = 0
    continuous: bool = False
    auto_estimate_days: AutoEstimateDays = Field(default_factory=AutoEstimateDays)

    def validate_dates(self) -> List[str]:
        """Return date validation errors for this project."""
        return validate_project_dates(self)


def validate_project_dates(project: Project) -> List[str]:
    """Check ``start_date <= end_date`` for non-continuous projects."""
    if project.continuous:
        return []
    if project.end_date is None:
        return [VALIDATION_PROJECT_END_REQUIRED]
    if project.end_date < project.start_date:
        return [VALIDATION_PROJECT_END_BEFORE_START]
    return []


class Holiday(BaseModel):
    """Holiday covering an inclusive date range."""

    name: str = "Holiday"
    start_date: dt.date
    end_date: dt.date


class CalendarEvent(BaseModel):
    """Calendar event that blocks auto-estimation on the days it touches."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: Optional[str] = None
    title: str = ""
    start_time: dt.datetime
    end_time: dt.datetime
    completed: bool = False

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def day(self) -> dt.date:
        return self.start_time.date()


class EstimateSource(str, Enum):
    """Where a day's hours came from."""

    EVENT = "event"
    PHASE = "phase"
    PROJECT = "project"


class DayEstimate(BaseModel):
    """Hours attributed to a project on a single day."""

    date: dt.date
    project_id: str
    hours: float
    source: EstimateSource
    phase_id: Optional[str] = None
    is_working_day: bool = True
