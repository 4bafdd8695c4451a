"""
Phase model for phasekit.

A phase is either a split phase (has a start date and covers a slice of the
project timeline), a pure milestone (no start date, only an end date), or the
recurring template that materialized milestone occurrences are generated from.
"""

import uuid
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator


class RecurrenceType(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MonthlyPattern(str, Enum):
    """How a monthly recurrence picks its day."""

    DATE = "date"
    DAY_OF_WEEK = "dayOfWeek"


# Python attribute name -> persisted camelCase key
_PERSISTED_KEYS = {
    "type": "type",
    "interval": "interval",
    "weekly_day_of_week": "weeklyDayOfWeek",
    "monthly_pattern": "monthlyPattern",
    "monthly_date": "monthlyDate",
    "monthly_week_of_month": "monthlyWeekOfMonth",
    "monthly_day_of_week": "monthlyDayOfWeek",
}


class RecurrenceConfig(BaseModel):
    """
    Recurrence rule for a recurring milestone template.

    The model does not range-check its fields: configs are loaded as they were
    persisted and checked with ``validate_recurrence_config``.

    Fields:
    - type: daily, weekly or monthly (kept as a plain string)
    - interval: every N days/weeks/months
    - weekly_day_of_week: 0-6, 0 = Sunday
    - monthly_pattern: "date" or "dayOfWeek"
    - monthly_date: 1-31, clamped to the month length when generating
    - monthly_week_of_month: 1-4, 5 = second-last, 6 = last
    - monthly_day_of_week: 0-6, 0 = Sunday
    """

    model_config = {"frozen": True}

    type: str = RecurrenceType.WEEKLY.value
    interval: int = 1
    weekly_day_of_week: Optional[int] = None
    monthly_pattern: Optional[str] = None
    monthly_date: Optional[int] = None
    monthly_week_of_month: Optional[int] = None
    monthly_day_of_week: Optional[int] = None

    @field_validator("type", "monthly_pattern", mode="before")
    @classmethod
    def coerce_enum_value(cls, v: Any) -> Any:
        """Store enum members as their string value."""
        if isinstance(v, Enum):
            return v.value
        return v

    def to_persisted(self) -> Dict[str, Any]:
        """Return the camelCase dict stored alongside a template.

        Optional keys that are unset are omitted, so
        ``from_persisted(c.to_persisted()) == c`` for every config.
        """
        data: Dict[str, Any] = {}
        for attr, key in _PERSISTED_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_persisted(cls, data: Dict[str, Any]) -> "RecurrenceConfig":
        """Build a config from its persisted camelCase dict."""
        kwargs = {}
        for attr, key in _PERSISTED_KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        return cls(**kwargs)


class Phase(BaseModel):
    """
    Phase / milestone model.

    A phase without ``start_date`` is a pure milestone. A phase with
    ``is_recurring`` and a ``recurring_config`` is the project's recurring
    template.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    name: str
    start_date: Optional[date] = None
    end_date: date
    time_allocation_hours: float = 0
    is_recurring: Optional[bool] = None
    recurring_config: Optional[RecurrenceConfig] = None

    @field_validator("recurring_config", mode="before")
    @classmethod
    def parse_persisted_config(cls, v: Any) -> Any:
        """Accept the persisted camelCase dict as well as snake_case input."""
        if isinstance(v, dict) and any(
            key in v for key in _PERSISTED_KEYS.values() if key not in ("type", "interval")
        ):
            return RecurrenceConfig.from_persisted(v)
        return v

    @field_serializer("recurring_config")
    def serialize_config(self, config: Optional[RecurrenceConfig]) -> Optional[Dict[str, Any]]:
        """Persist the config in its camelCase shape."""
        return config.to_persisted() if config is not None else None

    @property
    def is_split_phase(self) -> bool:
        """True for phases that occupy a date range on the timeline."""
        return self.start_date is not None

    @property
    def is_recurring_template(self) -> bool:
        """True when this phase is the project's recurring template."""
        return bool(self.is_recurring) and self.recurring_config is not None

    @property
    def effective_start(self) -> date:
        """Start date, or the end date for pure milestones."""
        return self.start_date if self.start_date is not None else self.end_date


class PhaseDraft(BaseModel):
    """A phase that has been calculated but not yet persisted."""

    name: str
    start_date: date
    end_date: date
    time_allocation_hours: float = 0

    def to_phase(self, project_id: str) -> Phase:
        """Create a Phase for ``project_id`` from this draft."""
        return Phase(
            project_id=project_id,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            time_allocation_hours=self.time_allocation_hours,
        )
