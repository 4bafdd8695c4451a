"""
Per-day hour distribution for phasekit.

Turns a project's phases into day estimates. Each phase owns a segment of the
timeline that ends on its end date; its hours are spread evenly over the
segment's working days. Days with calendar events belong to the events and
never receive auto-estimated hours.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set

from phasekit.models.phase import Phase
from phasekit.models.project import CalendarEvent, DayEstimate, EstimateSource, Holiday, Project
from phasekit.rules.dates import add_days, date_range, day_of_week, expand_holidays


@dataclass
class PhaseSegment:
    """The slice of the timeline a phase's hours are spread over."""

    phase_id: str
    start: date
    end: date
    hours: float
    working_days: List[date] = field(default_factory=list)

    @property
    def hours_per_day(self) -> float:
        if not self.working_days:
            return self.hours
        return self.hours / len(self.working_days)


def is_working_day(day: date, project: Project, holiday_days: Set[date]) -> bool:
    """Not a holiday and enabled in the project's auto-estimate mask."""
    if day in holiday_days:
        return False
    return project.auto_estimate_days.allows(day_of_week(day))


def events_by_date(events: Iterable[CalendarEvent], project: Project) -> Dict[date, List[CalendarEvent]]:
    """Group the project's events by the day they start on."""
    grouped: Dict[date, List[CalendarEvent]] = defaultdict(list)
    for event in events:
        if event.project_id is not None and event.project_id != project.id:
            continue
        grouped[event.day].append(event)
    return dict(grouped)


def _completed_hours(grouped: Dict[date, List[CalendarEvent]], start: date, end: date) -> float:
    return sum(
        event.duration_hours
        for day, day_events in grouped.items()
        if start <= day <= end
        for event in day_events
        if event.completed
    )


def calculate_phase_segments(
    phases: Sequence[Phase],
    project: Project,
    holidays: Iterable[Holiday] = (),
    events: Iterable[CalendarEvent] = (),
    today: Optional[date] = None,
) -> List[PhaseSegment]:
    """
    Build the distribution segment of every phase.

    Segment start is the phase's own start date when it has one, otherwise
    the day after the previous phase's end, otherwise the project start.
    Completed event hours inside the segment are deducted from its hours.
    When ``today`` is given, days before it are not working days.
    """
    holiday_days = expand_holidays(holidays)
    grouped = events_by_date(events, project)
    ordered = sorted(
        (phase for phase in phases if not phase.is_recurring_template),
        key=lambda phase: phase.end_date,
    )

    segments: List[PhaseSegment] = []
    previous_end: Optional[date] = None
    for phase in ordered:
        if phase.start_date is not None:
            start = phase.start_date
        elif previous_end is not None:
            start = add_days(previous_end, 1)
        else:
            start = project.start_date
        previous_end = phase.end_date

        hours = max(0.0, (phase.time_allocation_hours or 0) - _completed_hours(grouped, start, phase.end_date))
        working_days = [
            day
            for day in date_range(start, phase.end_date)
            if is_working_day(day, project, holiday_days)
            and day not in grouped
            and (today is None or day >= today)
        ]
        segments.append(
            PhaseSegment(
                phase_id=phase.id,
                start=start,
                end=phase.end_date,
                hours=hours,
                working_days=working_days,
            )
        )
    return segments


def _segment_estimates(
    segment: PhaseSegment, project: Project, source: EstimateSource
) -> List[DayEstimate]:
    if segment.hours <= 0:
        return []

    phase_id = segment.phase_id if source == EstimateSource.PHASE else None
    if not segment.working_days:
        return [
            DayEstimate(
                date=segment.end,
                project_id=project.id,
                hours=segment.hours,
                source=source,
                phase_id=phase_id,
                is_working_day=False,
            )
        ]

    per_day = segment.hours_per_day
    return [
        DayEstimate(
            date=day, project_id=project.id, hours=per_day, source=source, phase_id=phase_id
        )
        for day in segment.working_days
    ]


def calculate_project_day_estimates(
    project: Project,
    phases: Sequence[Phase],
    holidays: Iterable[Holiday] = (),
    events: Iterable[CalendarEvent] = (),
    today: Optional[date] = None,
) -> List[DayEstimate]:
    """
    Day estimates for a whole project, sorted by date.

    Event days come first, with one estimate carrying the day's total event
    hours. Phases are distributed over their segments. A project without
    phases spreads its own budget from start to end (bounded projects only).
    """
    events = list(events)
    holidays = list(holidays)
    grouped = events_by_date(events, project)

    estimates: List[DayEstimate] = []
    for day, day_events in grouped.items():
        hours = sum(event.duration_hours for event in day_events)
        if hours > 0:
            estimates.append(
                DayEstimate(date=day, project_id=project.id, hours=hours, source=EstimateSource.EVENT)
            )

    distributable = [phase for phase in phases if not phase.is_recurring_template]
    if distributable:
        for segment in calculate_phase_segments(distributable, project, holidays, events, today):
            estimates.extend(_segment_estimates(segment, project, EstimateSource.PHASE))
    elif not project.continuous and project.end_date is not None and project.estimated_hours > 0:
        whole = Phase(
            id=project.id,
            project_id=project.id,
            name=project.name,
            start_date=project.start_date,
            end_date=project.end_date,
            time_allocation_hours=project.estimated_hours,
        )
        for segment in calculate_phase_segments([whole], project, holidays, events, today):
            estimates.extend(_segment_estimates(segment, project, EstimateSource.PROJECT))

    return sorted(estimates, key=lambda estimate: estimate.date)
