"""
File models for phasekit.

Models representing the structure of JSON files in the .phasekit/ directory.
"""

from typing import List

from pydantic import BaseModel, Field

from phasekit.constants import (
    DEFAULT_CONTINUOUS_MAX_OCCURRENCES,
    DEFAULT_CONTINUOUS_TARGET_COUNT,
    DEFAULT_CONTINUOUS_WINDOW_BACK_DAYS,
    DEFAULT_CONTINUOUS_WINDOW_FORWARD_DAYS,
    DEFAULT_DATE_FORMATS,
    DEFAULT_GENERATION_BATCH_SIZE,
    DEFAULT_MAX_OCCURRENCES,
    DEFAULT_SERIES_ESTIMATE_CAP,
    HARD_OCCURRENCE_CEILING,
)

from .phase import Phase
from .project import Holiday, Project


class PhasesFile(BaseModel):
    """Model for phases.json file.

    Flat lists of projects and phases with project_id references.
    """

    projects: List[Project] = Field(default_factory=list)
    phases: List[Phase] = Field(default_factory=list)
    holidays: List[Holiday] = Field(default_factory=list)


class ConfigFile(BaseModel):
    """Model for config.json file.

    Generation limits and parsing settings.
    """

    schema_version: str = "0.1.0"

    # Recurrence limits
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES
    continuous_max_occurrences: int = DEFAULT_CONTINUOUS_MAX_OCCURRENCES
    hard_occurrence_ceiling: int = HARD_OCCURRENCE_CEILING
    continuous_window_back_days: int = DEFAULT_CONTINUOUS_WINDOW_BACK_DAYS
    continuous_window_forward_days: int = DEFAULT_CONTINUOUS_WINDOW_FORWARD_DAYS

    # Lazy generation
    generation_batch_size: int = DEFAULT_GENERATION_BATCH_SIZE
    series_estimate_cap: int = DEFAULT_SERIES_ESTIMATE_CAP
    continuous_target_count: int = DEFAULT_CONTINUOUS_TARGET_COUNT

    # Date settings
    date_formats: List[str] = Field(default_factory=lambda: list(DEFAULT_DATE_FORMATS))
