"""
Recurring pattern detection for phasekit.

Works out whether a project's stored phases describe a recurring series. Two
heuristics apply, in order:

1. Template: a phase flagged ``is_recurring`` with a recurrence config.
2. Legacy numbered: milestones (no start date) named like ``"Standup 3"``.
   The interval is inferred from the gap between the first two by date.

Split phases never take part in detection.

Known limitation: the legacy heuristic cannot tell a recurring instance from a
user-named milestone that happens to end in a number (``"Review 2"``).
"""

import re
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple, Union

from phasekit.constants import DEFAULT_RECURRING_NAME
from phasekit.models.phase import Phase, RecurrenceConfig, RecurrenceType
from phasekit.rules.dates import day_difference

NUMBERED_NAME = re.compile(r"\s\d+$")


@dataclass(frozen=True)
class TemplateDetection:
    template: Phase
    kind: Literal["template"] = "template"

    @property
    def config(self) -> RecurrenceConfig:
        return self.template.recurring_config


@dataclass(frozen=True)
class LegacyNumberedDetection:
    base_name: str
    type: str
    interval: int
    instances: Tuple[Phase, ...] = ()
    kind: Literal["legacyNumbered"] = "legacyNumbered"

    @property
    def config(self) -> RecurrenceConfig:
        """A synthesized config equivalent to the detected type and interval."""
        first = self.instances[0].end_date if self.instances else None
        if self.type == RecurrenceType.WEEKLY.value and first is not None:
            return RecurrenceConfig(
                type=self.type,
                interval=self.interval,
                weekly_day_of_week=(first.weekday() + 1) % 7,
            )
        if self.type == RecurrenceType.MONTHLY.value and first is not None:
            return RecurrenceConfig(
                type=self.type,
                interval=self.interval,
                monthly_pattern="date",
                monthly_date=first.day,
            )
        return RecurrenceConfig(type=self.type, interval=self.interval)


@dataclass(frozen=True)
class NoDetection:
    kind: Literal["none"] = "none"


Detection = Union[TemplateDetection, LegacyNumberedDetection, NoDetection]


def infer_interval(days: int) -> Tuple[str, int]:
    """Map a day gap between two occurrences to ``(type, interval)``."""
    if days == 1:
        return RecurrenceType.DAILY.value, 1
    if days == 7:
        return RecurrenceType.WEEKLY.value, 1
    if 28 <= days <= 31:
        return RecurrenceType.MONTHLY.value, 1
    if days > 0 and days % 7 == 0:
        return RecurrenceType.WEEKLY.value, days // 7
    return RecurrenceType.DAILY.value, max(days, 1)


def is_numbered_instance(phase: Phase) -> bool:
    """A pure milestone whose name ends in a space and digits."""
    return (
        phase.start_date is None
        and not phase.is_recurring_template
        and bool(phase.name)
        and NUMBERED_NAME.search(phase.name) is not None
    )


def strip_number(name: str) -> str:
    base = NUMBERED_NAME.sub("", name).strip()
    return base or DEFAULT_RECURRING_NAME


def find_template(phases: Sequence[Phase]) -> Optional[Phase]:
    return next((phase for phase in phases if phase.is_recurring_template), None)


def numbered_instances(phases: Sequence[Phase]) -> List[Phase]:
    """Materialized occurrences, sorted by date."""
    return sorted((phase for phase in phases if is_numbered_instance(phase)), key=lambda p: p.end_date)


def detect_recurring_pattern(phases: Sequence[Phase]) -> Detection:
    """Return the detected recurring pattern for a project's phases."""
    template = find_template(phases)
    if template is not None:
        return TemplateDetection(template=template)

    instances = numbered_instances(phases)
    if not instances:
        return NoDetection()

    if len(instances) >= 2:
        kind, interval = infer_interval(day_difference(instances[0].end_date, instances[1].end_date))
    else:
        kind, interval = RecurrenceType.WEEKLY.value, 1

    return LegacyNumberedDetection(
        base_name=strip_number(instances[0].name),
        type=kind,
        interval=interval,
        instances=tuple(instances),
    )
