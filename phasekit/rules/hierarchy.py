"""
Phase hierarchy rules for phasekit.

Split phases must be ordered and non-overlapping, and a project holds either
split phases or a recurring template, never both. These functions detect and
repair violations; they never persist anything.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from phasekit.constants import (
    DEFAULT_LONG_PHASE_NEW_DAYS,
    DEFAULT_PHASE_NAME_TEMPLATE,
    DEFAULT_SHORT_PHASE_NEW_DAYS,
    DEFAULT_SHORT_PHASE_THRESHOLD_DAYS,
    EXCLUSIVITY_ERROR,
    MIN_PHASE_SPACING_DAYS,
    VALIDATION_AFTER_PROJECT_END,
    VALIDATION_BEFORE_PROJECT_START,
    VALIDATION_END_BEFORE_START,
    VALIDATION_NAME_REQUIRED,
    VALIDATION_NEGATIVE_HOURS,
)
from phasekit.exceptions import InvalidOperationError
from phasekit.models.phase import Phase, PhaseDraft
from phasekit.models.project import Project
from phasekit.rules.dates import add_days, day_difference


@dataclass(frozen=True)
class ExclusivityCheck:
    has_split_phases: bool
    has_recurring_template: bool
    is_valid: bool
    error: Optional[str] = None


@dataclass
class ContinuityResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NewPhaseDates:
    new_phase_start: date
    new_phase_end: date
    last_phase_new_end: date


@dataclass(frozen=True)
class PhaseRepair:
    """Move ``phase_id`` to start on ``start_date``."""

    phase_id: str
    start_date: date


def _by_start(phases: Iterable[Phase]) -> List[Phase]:
    return sorted(phases, key=lambda phase: (phase.effective_start, phase.end_date))


def sort_by_end_date(phases: Iterable[Phase]) -> List[Phase]:
    return sorted(phases, key=lambda phase: phase.end_date)


def check_exclusivity(phases: Iterable[Phase]) -> ExclusivityCheck:
    """Split phases and a recurring template cannot coexist."""
    phases = list(phases)
    has_split = any(phase.start_date is not None and phase.is_recurring is not True for phase in phases)
    has_template = any(phase.is_recurring is True for phase in phases)

    if has_split and has_template:
        return ExclusivityCheck(
            has_split_phases=True,
            has_recurring_template=True,
            is_valid=False,
            error=EXCLUSIVITY_ERROR,
        )
    return ExclusivityCheck(
        has_split_phases=has_split, has_recurring_template=has_template, is_valid=True
    )


def calculate_phase_split(start: date, end: date, budget: float) -> Tuple[PhaseDraft, PhaseDraft]:
    """
    Split a project timeline in two at its midpoint.

    Phase 1 runs from ``start`` to the midpoint, phase 2 from the day after the
    midpoint to ``end``. The budget is halved.
    """
    midpoint = add_days(start, day_difference(start, end) // 2)
    half = budget / 2
    return (
        PhaseDraft(
            name=DEFAULT_PHASE_NAME_TEMPLATE.format(number=1),
            start_date=start,
            end_date=midpoint,
            time_allocation_hours=half,
        ),
        PhaseDraft(
            name=DEFAULT_PHASE_NAME_TEMPLATE.format(number=2),
            start_date=add_days(midpoint, 1),
            end_date=end,
            time_allocation_hours=half,
        ),
    )


def validate_phases_continuity(
    phases: Sequence[Phase], project_start: date, project_end: date
) -> ContinuityResult:
    """
    Check that split phases cover the project without overlapping.

    Overlaps are errors. Uncovered days between phases are warnings.
    """
    if not phases:
        return ContinuityResult(is_valid=True)

    ordered = _by_start(phases)
    errors: List[str] = []
    warnings: List[str] = []

    if ordered[0].effective_start != project_start:
        errors.append("First phase should start at project start date")
    if ordered[-1].end_date != project_end:
        errors.append("Last phase should end at project end date")

    for current, following in zip(ordered, ordered[1:]):
        following_start = following.effective_start
        if current.end_date >= following_start:
            errors.append(
                f'Overlap between "{current.name}" and "{following.name}" '
                "- phases must be on different days"
            )
        else:
            # Back-to-back phases (next starts the day after) leave no gap.
            gap = day_difference(current.end_date, following_start) - 1
            if gap > 0:
                warnings.append(
                    f'{gap}-day gap between "{current.name}" and "{following.name}" '
                    "(pause time with no estimate)"
                )

    return ContinuityResult(is_valid=not errors, errors=errors, warnings=warnings)


def calculate_new_phase_dates(phases: Sequence[Phase], project_end: date) -> NewPhaseDates:
    """
    Make room for a new phase at the end of the project.

    The new phase takes 1 day when the last phase spans 21 days or fewer and
    6 days otherwise. The last phase is shortened to end the day before.

    Raises:
        InvalidOperationError: If there are no phases to shrink.
    """
    if not phases:
        raise InvalidOperationError("Cannot add phase: no existing phases")

    last = _by_start(phases)[-1]
    last_days = day_difference(last.effective_start, last.end_date)
    new_days = (
        DEFAULT_SHORT_PHASE_NEW_DAYS
        if last_days <= DEFAULT_SHORT_PHASE_THRESHOLD_DAYS
        else DEFAULT_LONG_PHASE_NEW_DAYS
    )

    new_start = add_days(project_end, -new_days)
    return NewPhaseDates(
        new_phase_start=new_start,
        new_phase_end=project_end,
        last_phase_new_end=add_days(new_start, -1),
    )


def repair_overlapping_phases(phases: Sequence[Phase]) -> List[PhaseRepair]:
    """
    Push overlapping phases forward so each starts the day after the previous ends.

    A single left-to-right pass over the phases sorted by start date; later
    comparisons see earlier repairs. Running it on its own output yields no
    further repairs.
    """
    ordered = _by_start(phases)
    repairs: List[PhaseRepair] = []

    for index in range(len(ordered) - 1):
        current, following = ordered[index], ordered[index + 1]
        if current.end_date >= following.effective_start:
            fixed = add_days(current.end_date, 1)
            repairs.append(PhaseRepair(phase_id=following.id, start_date=fixed))
            ordered[index + 1] = following.model_copy(update={"start_date": fixed})

    return repairs


def apply_repairs(phases: Iterable[Phase], repairs: Iterable[PhaseRepair]) -> List[Phase]:
    """Return copies of ``phases`` with the repairs applied."""
    starts: Dict[str, date] = {repair.phase_id: repair.start_date for repair in repairs}
    return [
        phase.model_copy(update={"start_date": starts[phase.id]}) if phase.id in starts else phase
        for phase in phases
    ]


def cascade_phase_adjustments(
    phases: Sequence[Phase], phase_id: str, new_end: date
) -> List[Phase]:
    """
    Move one phase's end date and shift the following phases to keep spacing.

    Each following phase that would start less than one day after its
    predecessor ends is shifted forward (start and end) by the minimal number
    of days. Cascading stops at the first phase that already has room.

    Returns:
        Copies of the phases sorted by end date. Unknown ``phase_id`` returns
        the phases unchanged.
    """
    ordered = sort_by_end_date(phases)
    index = next((i for i, phase in enumerate(ordered) if phase.id == phase_id), None)
    if index is None:
        return list(phases)

    ordered[index] = ordered[index].model_copy(update={"end_date": new_end})
    previous_end = new_end

    for i in range(index + 1, len(ordered)):
        phase = ordered[i]
        start = phase.start_date if phase.start_date is not None else previous_end
        min_start = add_days(previous_end, MIN_PHASE_SPACING_DAYS)
        if start >= min_start:
            break
        shift = day_difference(start, min_start)
        ordered[i] = phase.model_copy(
            update={
                "start_date": add_days(start, shift) if phase.start_date is not None else None,
                "end_date": add_days(phase.end_date, shift),
            }
        )
        previous_end = ordered[i].end_date

    return ordered


def calculate_minimum_end_date(phase: Phase, today: date) -> date:
    """A phase with hours must end today or later."""
    if (phase.time_allocation_hours or 0) > 0:
        return max(today, phase.end_date)
    return phase.end_date


def validate_end_date_not_in_past(phase: Phase, new_end: date, today: date) -> List[str]:
    """Reject moving a phase with hours to end before today."""
    if (phase.time_allocation_hours or 0) > 0 and new_end < today:
        return [
            f'"{phase.name}" has {phase.time_allocation_hours:g} hours estimated '
            "and cannot end before today"
        ]
    return []


def validate_phase_spacing(phases: Sequence[Phase]) -> List[str]:
    """Each phase must start at least one day after the previous one ends."""
    ordered = sort_by_end_date(phases)
    errors: List[str] = []
    for current, following in zip(ordered, ordered[1:]):
        following_start = following.start_date if following.start_date is not None else current.end_date
        if following_start < add_days(current.end_date, MIN_PHASE_SPACING_DAYS):
            errors.append(
                f'Phase "{following.name}" must start at least 1 day after "{current.name}" ends'
            )
    return errors


def validate_phase_dates(phase: Phase, project: Project) -> List[str]:
    """Field-level checks for a phase against its project."""
    errors: List[str] = []
    if not phase.name or not phase.name.strip():
        errors.append(VALIDATION_NAME_REQUIRED)
    if (phase.time_allocation_hours or 0) < 0:
        errors.append(VALIDATION_NEGATIVE_HOURS)
    if phase.start_date is not None and phase.end_date < phase.start_date:
        errors.append(VALIDATION_END_BEFORE_START)

    if project.continuous:
        return errors
    if phase.effective_start < project.start_date:
        errors.append(VALIDATION_BEFORE_PROJECT_START)
    if project.end_date is not None and phase.end_date > project.end_date:
        errors.append(VALIDATION_AFTER_PROJECT_END)
    return errors
