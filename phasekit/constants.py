"""
Constants for phasekit.

Note: These constants serve as default fallback values.
Actual values are loaded from .phasekit/config.json at runtime via ConfigManager.
"""
from pathlib import Path
from typing import Any, Optional
import json

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

# Recurrence generation limits
DEFAULT_MAX_OCCURRENCES = 365            # Non-continuous projects
DEFAULT_CONTINUOUS_MAX_OCCURRENCES = 100  # Per generation batch for continuous projects
HARD_OCCURRENCE_CEILING = 1000
DEFAULT_EXCESSIVE_OCCURRENCE_WARNING = 50

# Continuous projects are calculated inside a rolling window around today
DEFAULT_CONTINUOUS_WINDOW_BACK_DAYS = 30
DEFAULT_CONTINUOUS_WINDOW_FORWARD_DAYS = 90

# Lazy generation of materialized occurrences
DEFAULT_GENERATION_BATCH_SIZE = 20
DEFAULT_SERIES_ESTIMATE_CAP = 500
DEFAULT_CONTINUOUS_TARGET_COUNT = 26
DEFAULT_CONTINUOUS_RUNWAY_DAYS = 365

# Phase insertion
DEFAULT_SHORT_PHASE_THRESHOLD_DAYS = 21
DEFAULT_SHORT_PHASE_NEW_DAYS = 1
DEFAULT_LONG_PHASE_NEW_DAYS = 6
MIN_PHASE_SPACING_DAYS = 1

# Budget suggestions
DEFAULT_MILESTONE_VARIANCE = 0.2

# Naming
DEFAULT_RECURRING_NAME = "Recurring Milestone"
DEFAULT_PHASE_NAME_TEMPLATE = "Phase {number}"

# Recurrence vocabulary (not configurable)
RECURRENCE_TYPES = ["daily", "weekly", "monthly"]
MONTHLY_PATTERNS = ["date", "dayOfWeek"]
WEEK_OF_MONTH_SECOND_LAST = 5
WEEK_OF_MONTH_LAST = 6
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEK_OF_MONTH_NAMES = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "second-last", 6: "last"}

# Validation error messages (not configurable)
VALIDATION_NAME_REQUIRED = "Name is required for all phases."
VALIDATION_NEGATIVE_HOURS = "Time allocation cannot be negative."
VALIDATION_END_BEFORE_START = "Phase end date cannot be before its start date."
VALIDATION_BEFORE_PROJECT_START = "Phase date cannot be before project start date."
VALIDATION_AFTER_PROJECT_END = "Phase date cannot be after project end date."
VALIDATION_PROJECT_END_BEFORE_START = "Project end date cannot be before its start date."
VALIDATION_PROJECT_END_REQUIRED = "Non-continuous projects need an end date."
EXCLUSIVITY_ERROR = (
    "Project cannot have both split phases and a recurring template. "
    "These are mutually exclusive."
)

# Date format defaults
DEFAULT_DATE_FORMATS = [
    "%Y-%m-%d",      # YYYY-MM-DD (ISO 8601)
    "%Y/%m/%d",      # YYYY/MM/DD
    "%d-%m-%Y",      # DD-MM-YYYY
    "%d/%m/%Y",      # DD/MM/YYYY
    "%Y%m%d",        # YYYYMMDD
    "%d %B %Y",      # DD Month YYYY (e.g., 31 December 2024)
    "%d %b %Y",      # DD Mon YYYY (e.g., 31 Dec 2024)
    "%B %d, %Y",     # Month DD, YYYY (e.g., December 31, 2024)
    "%b %d, %Y",     # Mon DD, YYYY (e.g., Dec 31, 2024)
]

DATE_FORMAT_ERROR = (
    "Invalid date format. Supported formats: YYYY-MM-DD, YYYY/MM/DD, DD-MM-YYYY, DD/MM/YYYY, "
    "YYYYMMDD, 'DD Month YYYY', 'Month DD, YYYY'. "
    "Examples: 2025-01-31, 31/01/2025, '31 January 2025', 'January 31, 2025'."
)


# =============================================================================
# Config Loader
# Load values from .phasekit/config.json at runtime.
# =============================================================================

_config_manager_instance: Optional['ConfigManager'] = None


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    Usage:
        # With default path (.phasekit/config.json)
        config = ConfigManager()
        batch_size = config.get_int('generation_batch_size', DEFAULT_GENERATION_BATCH_SIZE)

        # With custom path
        config = ConfigManager(config_path=Path("/custom/path/config.json"))
    """

    def __init__(self, config_path: Optional[Path] = None, data_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over data_dir.
            data_dir: Path to .phasekit/ directory. Config path will be data_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif data_dir is not None:
            self._config_path = data_dir / "config.json"
        else:
            self._config_path = Path(".phasekit") / "config.json"

    def _load_config(self) -> dict:
        """Load config from config.json file."""
        if self._config is not None:
            return self._config

        if self._config_path.exists():
            try:
                with open(self._config_path, "r") as f:
                    self._config = json.load(f)
            except (json.JSONDecodeError, IOError):
                self._config = {}
            if not isinstance(self._config, dict):
                self._config = {}
        else:
            self._config = {}

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value with fallback to default.

        Args:
            key: Configuration key name.
            default: Default value if key not found.

        Returns:
            Config value or default.
        """
        config = self._load_config()
        return config.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        """Get an integer config value with fallback."""
        value = self.get(key, default)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_list(self, key: str, default: list) -> list:
        """Get a list config value with fallback."""
        value = self.get(key, default)
        return list(value) if isinstance(value, (list, tuple)) else default

    def get_str(self, key: str, default: str) -> str:
        """Get a string config value with fallback."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def reload(self) -> dict:
        """Force reload of config from disk."""
        self._config = None
        return self._load_config()

    @property
    def config_path(self) -> Path:
        """Get the config file path."""
        return self._config_path


def get_config_manager(reset: bool = False) -> ConfigManager:
    """
    Get the singleton ConfigManager instance with default path.

    Args:
        reset: If True, reset the singleton and create a new instance.

    Returns:
        ConfigManager singleton instance.
    """
    global _config_manager_instance
    if _config_manager_instance is None or reset:
        _config_manager_instance = ConfigManager()
    return _config_manager_instance


def reset_config_manager() -> None:
    """Reset the singleton ConfigManager instance (useful for testing)."""
    global _config_manager_instance
    _config_manager_instance = None


# Convenience functions for common config access
def get_generation_batch_size() -> int:
    """Get the per-invocation occurrence batch size from config or default."""
    return get_config_manager().get_int('generation_batch_size', DEFAULT_GENERATION_BATCH_SIZE)


def get_series_estimate_cap() -> int:
    """Get the cap on estimated occurrences per series from config or default."""
    return get_config_manager().get_int('series_estimate_cap', DEFAULT_SERIES_ESTIMATE_CAP)


def get_continuous_target_count() -> int:
    """Get the materialized-occurrence target for continuous projects."""
    return get_config_manager().get_int('continuous_target_count', DEFAULT_CONTINUOUS_TARGET_COUNT)


def get_continuous_window_back_days() -> int:
    """Get how many days before today a continuous window starts."""
    return get_config_manager().get_int(
        'continuous_window_back_days', DEFAULT_CONTINUOUS_WINDOW_BACK_DAYS
    )


def get_continuous_window_forward_days() -> int:
    """Get how many days after today a continuous window ends."""
    return get_config_manager().get_int(
        'continuous_window_forward_days', DEFAULT_CONTINUOUS_WINDOW_FORWARD_DAYS
    )


def get_date_formats() -> list:
    """Get date formats from config or default."""
    return get_config_manager().get_list('date_formats', DEFAULT_DATE_FORMATS)


def get_max_occurrences() -> int:
    """Get the occurrence cap for bounded projects from config or default."""
    return get_config_manager().get_int('max_occurrences', DEFAULT_MAX_OCCURRENCES)


def get_continuous_max_occurrences() -> int:
    """Get the occurrence cap for continuous windows from config or default."""
    return get_config_manager().get_int(
        'continuous_max_occurrences', DEFAULT_CONTINUOUS_MAX_OCCURRENCES
    )


def get_hard_occurrence_ceiling() -> int:
    """Get the ceiling no occurrence cap may exceed."""
    return get_config_manager().get_int('hard_occurrence_ceiling', HARD_OCCURRENCE_CEILING)
