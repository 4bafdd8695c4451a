"""
Budget allocation rules for phasekit.

Pure arithmetic over a set of phases and a project budget. ``would_exceed_budget``
is the one gate every mutation goes through before a phase is created or its
hours change.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from phasekit.constants import DEFAULT_MILESTONE_VARIANCE
from phasekit.models.phase import Phase
from phasekit.rules.dates import day_difference


@dataclass(frozen=True)
class BudgetCheck:
    """Verdict of the budget gate."""

    would_exceed: bool
    overage: float
    current_allocation: float
    new_allocation: float

    @property
    def error(self) -> Optional[str]:
        if not self.would_exceed:
            return None
        return f"Would exceed project budget by {_format_number(self.overage)} hours"


@dataclass(frozen=True)
class BudgetAnalysis:
    total_allocated: float
    remaining: float
    overage: float
    utilization: float
    is_over_budget: bool


@dataclass(frozen=True)
class AllocationDistribution:
    min: float = 0
    max: float = 0
    avg: float = 0
    median: float = 0
    std_dev: float = 0


@dataclass(frozen=True)
class TimelinePressure:
    """How tightly milestones are packed; ``pressure`` is 0-1, 1 = very tight."""

    pressure: float = 0
    average_days_between: float = 0
    min_days_between: int = 0
    max_days_between: int = 0


@dataclass(frozen=True)
class MilestoneBudgetSuggestion:
    suggested: int = 0
    min: int = 0
    max: int = 0


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}".rstrip("0")


def total_allocation(phases: Iterable[Phase]) -> float:
    """Sum of every phase's hours. Missing hours count as 0."""
    return sum((phase.time_allocation_hours or 0) for phase in phases)


def utilization(allocated: float, budget: float) -> float:
    """Allocated hours as a percentage of the budget (0 when there is no budget)."""
    if budget <= 0:
        return 0.0
    return allocated / budget * 100


def remaining(allocated: float, budget: float) -> float:
    return max(0.0, budget - allocated)


def overage(allocated: float, budget: float) -> float:
    return max(0.0, allocated - budget)


def would_exceed_budget(
    existing: Iterable[Phase],
    candidate_hours: float,
    budget: float,
    exclude_id: Optional[str] = None,
) -> BudgetCheck:
    """
    Check whether adding ``candidate_hours`` pushes the allocation over budget.

    Args:
        existing: Phases already allocated against the budget.
        candidate_hours: Hours of the new (or edited) phase.
        budget: Project budget in hours.
        exclude_id: Phase being edited; its current hours are not counted twice.

    Returns:
        BudgetCheck with the verdict and the numeric overage.
    """
    counted = [phase for phase in existing if exclude_id is None or phase.id != exclude_id]
    current = total_allocation(counted)
    new_total = current + candidate_hours
    return BudgetCheck(
        would_exceed=new_total > budget,
        overage=overage(new_total, budget),
        current_allocation=current,
        new_allocation=new_total,
    )


def analyze_budget(phases: Iterable[Phase], budget: float) -> BudgetAnalysis:
    """Summarize allocation against the budget."""
    allocated = total_allocation(phases)
    return BudgetAnalysis(
        total_allocated=allocated,
        remaining=remaining(allocated, budget),
        overage=overage(allocated, budget),
        utilization=utilization(allocated, budget),
        is_over_budget=allocated > budget,
    )


# =============================================================================
# Statistics
# =============================================================================


def allocation_distribution(phases: Sequence[Phase]) -> AllocationDistribution:
    """Min/max/average/median/standard deviation of phase hours."""
    if not phases:
        return AllocationDistribution()

    hours: List[float] = sorted((phase.time_allocation_hours or 0) for phase in phases)
    count = len(hours)
    avg = sum(hours) / count
    middle = count // 2
    median = (hours[middle - 1] + hours[middle]) / 2 if count % 2 == 0 else hours[middle]
    std_dev = math.sqrt(sum((h - avg) ** 2 for h in hours) / count)
    return AllocationDistribution(
        min=hours[0], max=hours[-1], avg=avg, median=median, std_dev=std_dev
    )


def timeline_pressure(
    phases: Sequence[Phase], project_start: date, project_end: date
) -> TimelinePressure:
    """
    Compare milestone spacing with an even spread over the project.

    Gaps include project start to the first milestone and the last milestone
    to project end. Pressure is ``ideal gap / average gap`` clamped to 1.
    """
    if len(phases) <= 1:
        return TimelinePressure()

    ordered = sorted(phases, key=lambda phase: phase.end_date)
    gaps = [day_difference(project_start, ordered[0].end_date)]
    gaps.extend(
        day_difference(previous.end_date, current.end_date)
        for previous, current in zip(ordered, ordered[1:])
    )
    gaps.append(day_difference(ordered[-1].end_date, project_end))

    average_gap = sum(gaps) / len(gaps)
    ideal_gap = day_difference(project_start, project_end) / (len(phases) + 1)
    return TimelinePressure(
        pressure=min(1.0, ideal_gap / max(1.0, average_gap)),
        average_days_between=average_gap,
        min_days_between=min(gaps),
        max_days_between=max(gaps),
    )


def suggested_milestone_budget(
    remaining_budget: float,
    remaining_milestones: int,
    variance: float = DEFAULT_MILESTONE_VARIANCE,
) -> MilestoneBudgetSuggestion:
    """Even share of the remaining budget with a +/- variance band."""
    if remaining_milestones <= 0:
        return MilestoneBudgetSuggestion()

    base = remaining_budget / remaining_milestones
    spread = base * variance
    return MilestoneBudgetSuggestion(
        suggested=round(base),
        min=max(0, round(base - spread)),
        max=round(base + spread),
    )
