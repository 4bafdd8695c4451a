"""
Data models for phasekit.

Import models explicitly from their modules:
    from phasekit.models.project import Project, Holiday, CalendarEvent, DayEstimate
    from phasekit.models.phase import Phase, PhaseDraft, RecurrenceConfig
    from phasekit.models.files import PhasesFile, ConfigFile
"""

from .files import ConfigFile, PhasesFile
from .phase import MonthlyPattern, Phase, PhaseDraft, RecurrenceConfig, RecurrenceType
from .project import (
    AutoEstimateDays,
    CalendarEvent,
    DayEstimate,
    EstimateSource,
    Holiday,
    Project,
)

__all__ = [
    "Phase",
    "PhaseDraft",
    "RecurrenceConfig",
    "RecurrenceType",
    "MonthlyPattern",
    "Project",
    "AutoEstimateDays",
    "Holiday",
    "CalendarEvent",
    "DayEstimate",
    "EstimateSource",
    "PhasesFile",
    "ConfigFile",
]
