"""
Recurrence rule engine for phasekit.

Generates the dated occurrences of a recurring milestone template. Generation
is always bounded: by the end date when there is one, and by an occurrence cap
(365 for bounded projects, 100 for continuous windows, never more than 1000).
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple

from phasekit.constants import (
    DAY_NAMES,
    DEFAULT_EXCESSIVE_OCCURRENCE_WARNING,
    MONTHLY_PATTERNS,
    RECURRENCE_TYPES,
    WEEK_OF_MONTH_LAST,
    WEEK_OF_MONTH_NAMES,
    WEEK_OF_MONTH_SECOND_LAST,
    get_continuous_max_occurrences,
    get_continuous_window_back_days,
    get_continuous_window_forward_days,
    get_hard_occurrence_ceiling,
    get_max_occurrences,
)
from phasekit.exceptions import ValidationError
from phasekit.models.phase import MonthlyPattern, RecurrenceConfig, RecurrenceType
from phasekit.models.project import Project
from phasekit.rules.dates import add_days, add_months, day_of_week, days_in_month

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    """A single generated occurrence. ``number`` is 1-indexed from the series start."""

    number: int
    date: date


@dataclass(frozen=True)
class CalculationWindow:
    """Inclusive date window used to bound continuous-project calculations."""

    start: date
    end: date


# =============================================================================
# Validation
# =============================================================================


def validate_recurrence_config(config: Optional[RecurrenceConfig]) -> List[str]:
    """Return a list of problems with ``config``; empty when it is usable."""
    if config is None:
        return ["Recurring phase must have recurrence configuration"]

    errors: List[str] = []
    if config.type not in RECURRENCE_TYPES:
        errors.append(
            f"Invalid recurrence type: {config.type}. Must be daily, weekly, or monthly"
        )

    if config.interval is None or config.interval < 1:
        errors.append("Recurrence interval must be at least 1")

    if config.type == RecurrenceType.WEEKLY.value:
        if config.weekly_day_of_week is None:
            errors.append("Weekly recurrence must specify day of week (0-6)")
        elif not 0 <= config.weekly_day_of_week <= 6:
            errors.append("Weekly day of week must be between 0 (Sunday) and 6 (Saturday)")

    if config.type == RecurrenceType.MONTHLY.value:
        if config.monthly_pattern is None:
            errors.append("Monthly recurrence must specify pattern (date or dayOfWeek)")
        elif config.monthly_pattern not in MONTHLY_PATTERNS:
            errors.append(
                f"Invalid monthly pattern: {config.monthly_pattern}. Must be date or dayOfWeek"
            )
        elif config.monthly_pattern == MonthlyPattern.DATE.value:
            if config.monthly_date is None:
                errors.append("Monthly date pattern must specify date (1-31)")
            elif not 1 <= config.monthly_date <= 31:
                errors.append("Monthly date must be between 1 and 31")
        else:
            if config.monthly_week_of_month is None or config.monthly_day_of_week is None:
                errors.append(
                    "Monthly dayOfWeek pattern must specify week of month and day of week"
                )
            else:
                if not 1 <= config.monthly_week_of_month <= WEEK_OF_MONTH_LAST:
                    errors.append("Monthly week of month must be between 1 and 6")
                if not 0 <= config.monthly_day_of_week <= 6:
                    errors.append(
                        "Monthly day of week must be between 0 (Sunday) and 6 (Saturday)"
                    )

    return errors


# =============================================================================
# Generation
# =============================================================================


def _last_weekday_of_month(year: int, month: int, weekday: int) -> int:
    """Day number of the last ``weekday`` (0 = Sunday) in the month."""
    last_day = days_in_month(year, month)
    last_weekday = day_of_week(date(year, month, last_day))
    return last_day - (last_weekday - weekday + 7) % 7


def _monthly_target(year: int, month: int, config: RecurrenceConfig) -> date:
    """The date a monthly rule selects inside the given month."""
    month_length = days_in_month(year, month)

    if (config.monthly_pattern or MonthlyPattern.DATE.value) == MonthlyPattern.DATE.value:
        target = config.monthly_date or 1
        return date(year, month, min(target, month_length))

    week = config.monthly_week_of_month or 1
    weekday = config.monthly_day_of_week if config.monthly_day_of_week is not None else 1

    if week >= WEEK_OF_MONTH_SECOND_LAST:
        last = _last_weekday_of_month(year, month, weekday)
        if week == WEEK_OF_MONTH_LAST:
            return date(year, month, last)
        second_last = last - 7
        return date(year, month, second_last if second_last > 0 else last)

    first_weekday = day_of_week(date(year, month, 1))
    day = 1 + (weekday - first_weekday + 7) % 7 + (week - 1) * 7
    if day > month_length:
        # Month has no nth weekday: fall back to the last valid one.
        day -= 7
    return date(year, month, day)


def _first_occurrence(config: RecurrenceConfig, start: date) -> Tuple[date, date]:
    """Return ``(first date, month anchor)`` for a series starting at ``start``."""
    anchor = start.replace(day=1)

    if config.type == RecurrenceType.DAILY.value:
        return add_days(start, config.interval), anchor

    if config.type == RecurrenceType.WEEKLY.value:
        target = config.weekly_day_of_week if config.weekly_day_of_week is not None else 0
        offset = (target - day_of_week(start) + 7) % 7
        return add_days(start, offset), anchor

    candidate = _monthly_target(anchor.year, anchor.month, config)
    if candidate < start:
        anchor = add_months(anchor, 1)
        candidate = _monthly_target(anchor.year, anchor.month, config)
    return candidate, anchor


def _next_occurrence(config: RecurrenceConfig, current: date, anchor: date) -> Tuple[date, date]:
    if config.type == RecurrenceType.DAILY.value:
        return current + timedelta(days=config.interval), anchor
    if config.type == RecurrenceType.WEEKLY.value:
        return current + timedelta(days=7 * config.interval), anchor
    anchor = add_months(anchor, config.interval)
    return _monthly_target(anchor.year, anchor.month, config), anchor


def resolve_cap(max_occurrences: Optional[int] = None, continuous: bool = False) -> int:
    """Occurrence cap for a generation call, never above the hard ceiling."""
    default = get_continuous_max_occurrences() if continuous else get_max_occurrences()
    cap = max_occurrences if max_occurrences is not None else default
    return max(0, min(cap, get_hard_occurrence_ceiling()))


def generate_occurrences(
    config: RecurrenceConfig,
    start: date,
    end: Optional[date] = None,
    max_occurrences: Optional[int] = None,
    continuous: bool = False,
    window_start: Optional[date] = None,
) -> List[Occurrence]:
    """
    Generate occurrences of ``config`` for a series starting at ``start``.

    Args:
        config: Recurrence rule. Must pass ``validate_recurrence_config``.
        start: Series start (usually the project start date).
        end: Inclusive last date. When None only the cap bounds generation.
        max_occurrences: Explicit cap; defaults to 365 (100 when continuous).
        continuous: Selects the continuous default cap.
        window_start: Occurrences before this date are numbered but not returned.

    Returns:
        Occurrences in date order.

    Raises:
        ValidationError: If the config is invalid.
    """
    errors = validate_recurrence_config(config)
    if errors:
        raise ValidationError("; ".join(errors))

    cap = resolve_cap(max_occurrences, continuous)
    current, anchor = _first_occurrence(config, start)
    occurrences: List[Occurrence] = []
    number = 0

    while len(occurrences) < cap and (end is None or current <= end):
        number += 1
        if window_start is None or current >= window_start:
            occurrences.append(Occurrence(number=number, date=current))
        current, anchor = _next_occurrence(config, current, anchor)

    return occurrences


def continuous_window(
    today: date,
    project_start: date,
    back_days: Optional[int] = None,
    forward_days: Optional[int] = None,
) -> CalculationWindow:
    """Default calculation window for a continuous project around ``today``."""
    back = back_days if back_days is not None else get_continuous_window_back_days()
    forward = forward_days if forward_days is not None else get_continuous_window_forward_days()
    return CalculationWindow(
        start=max(project_start, add_days(today, -back)),
        end=add_days(today, forward),
    )


def generate_for_project(
    config: RecurrenceConfig,
    project: Project,
    window: Optional[CalculationWindow] = None,
    today: Optional[date] = None,
    max_occurrences: Optional[int] = None,
) -> List[Occurrence]:
    """
    Generate occurrences for a project.

    Bounded projects generate up to their end date. Continuous projects are
    infinite, so they are calculated inside ``window`` (or the default window
    around ``today``).
    """
    if not project.continuous:
        return generate_occurrences(
            config, project.start_date, project.end_date, max_occurrences=max_occurrences
        )

    if window is None:
        window = continuous_window(today or date.today(), project.start_date)
    logger.debug(
        "Generating continuous occurrences for project %s in window %s..%s",
        project.id, window.start, window.end,
    )
    return generate_occurrences(
        config,
        project.start_date,
        window.end,
        max_occurrences=max_occurrences,
        continuous=True,
        window_start=window.start,
    )


# =============================================================================
# Estimates and descriptions
# =============================================================================


def estimate_occurrence_count(config: RecurrenceConfig, duration_days: int) -> int:
    """Rough occurrence count for a duration, using 30-day months."""
    interval = max(config.interval, 1)
    if config.type == RecurrenceType.DAILY.value:
        return duration_days // interval
    if config.type == RecurrenceType.WEEKLY.value:
        return duration_days // (7 * interval)
    if config.type == RecurrenceType.MONTHLY.value:
        return duration_days // (30 * interval)
    return 0


def has_excessive_occurrences(
    config: RecurrenceConfig,
    project: Project,
    threshold: int = DEFAULT_EXCESSIVE_OCCURRENCE_WARNING,
    today: Optional[date] = None,
) -> bool:
    """True when the project would hold at least ``threshold`` occurrences."""
    return len(generate_for_project(config, project, today=today)) >= threshold


def calculate_recurring_total_allocation(
    config: RecurrenceConfig,
    project: Project,
    hours_per_occurrence: float,
    today: Optional[date] = None,
) -> float:
    """Total hours across every occurrence the project would hold."""
    return len(generate_for_project(config, project, today=today)) * hours_per_occurrence


def describe_recurrence(config: RecurrenceConfig) -> str:
    """Human readable text such as ``Every 2 weeks on Monday``."""
    interval = config.interval
    plural = interval != 1
    count = f"{interval} " if plural else ""

    if config.type == RecurrenceType.DAILY.value:
        return f"Every {count}day{'s' if plural else ''}"

    if config.type == RecurrenceType.WEEKLY.value:
        weekday = DAY_NAMES[(config.weekly_day_of_week or 0) % 7]
        return f"Every {count}week{'s' if plural else ''} on {weekday}"

    if config.type == RecurrenceType.MONTHLY.value:
        prefix = f"Every {count}month{'s' if plural else ''}"
        if config.monthly_pattern == MonthlyPattern.DAY_OF_WEEK.value:
            week = WEEK_OF_MONTH_NAMES.get(config.monthly_week_of_month or 1, "1st")
            weekday = DAY_NAMES[(config.monthly_day_of_week if config.monthly_day_of_week is not None else 1) % 7]
            return f"{prefix} on the {week} {weekday}"
        return f"{prefix} on day {config.monthly_date or 1}"

    return "Custom recurrence"
