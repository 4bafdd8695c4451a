"""
Recurring milestone lifecycle manager for phasekit.

Coordinates the user-facing milestone workflows: creating and deleting a
recurring series, lazily materializing its occurrences, propagating a load
change, splitting an estimate into phases, adding phases and milestones, and
editing phase properties. Every workflow validates with the pure rules first,
then persists through the storage collaborator.

Derived per-project state (detected pattern, materialized occurrences) is
recomputed from storage on every call and never patched in place.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from phasekit.constants import (
    DEFAULT_CONTINUOUS_RUNWAY_DAYS,
    DEFAULT_CONTINUOUS_TARGET_COUNT,
    DEFAULT_GENERATION_BATCH_SIZE,
    DEFAULT_PHASE_NAME_TEMPLATE,
    DEFAULT_SERIES_ESTIMATE_CAP,
    HARD_OCCURRENCE_CEILING,
    VALIDATION_AFTER_PROJECT_END,
    ConfigManager,
    get_config_manager,
)
from phasekit.exceptions import (
    GenerationError,
    InvalidOperationError,
    PhasekitError,
)
from phasekit.managers.cache import Memoizer
from phasekit.managers.notifications import Notification, NotificationVariant, Notifier
from phasekit.managers.storage_manager import PhaseStorage
from phasekit.managers.workflow import LoadUpdateMode
from phasekit.models.phase import Phase, RecurrenceConfig
from phasekit.models.project import Project
from phasekit.rules.budget import BudgetCheck, would_exceed_budget
from phasekit.rules.dates import add_days
from phasekit.rules.detection import (
    Detection,
    LegacyNumberedDetection,
    NoDetection,
    TemplateDetection,
    detect_recurring_pattern,
    numbered_instances,
)
from phasekit.rules.hierarchy import (
    calculate_new_phase_dates,
    calculate_phase_split,
    cascade_phase_adjustments,
    check_exclusivity,
    validate_end_date_not_in_past,
    validate_phase_dates,
)
from phasekit.rules.recurrence import (
    Occurrence,
    describe_recurrence,
    estimate_occurrence_count,
    generate_for_project,
    generate_occurrences,
    validate_recurrence_config,
)

logger = logging.getLogger(__name__)

OccurrenceKey = Tuple[str, RecurrenceConfig, date, date, int]


@dataclass
class OperationResult:
    """Outcome of a workflow. ``success=False`` always carries ``error``."""

    success: bool
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    requires_confirmation: bool = False
    created: int = 0
    updated: int = 0
    deleted: int = 0
    phases: List[Phase] = field(default_factory=list)
    budget: Optional[BudgetCheck] = None


@dataclass
class ProjectState:
    """Derived state of one project, rebuilt from its stored phases."""

    phases: List[Phase]
    detection: Detection
    materialized: List[Phase]

    @property
    def materialized_count(self) -> int:
        return len(self.materialized)

    @property
    def split_phases(self) -> List[Phase]:
        return [p for p in self.phases if p.start_date is not None and p.is_recurring is not True]

    @property
    def budgeted_phases(self) -> List[Phase]:
        """Phases whose hours count against the budget. The template's hours are per occurrence."""
        return [p for p in self.phases if not p.is_recurring_template]


class LifecycleManager:
    """Runs milestone workflows for projects against a storage collaborator."""

    def __init__(
        self,
        storage: PhaseStorage,
        notifier: Optional[Notifier] = None,
        config: Optional[ConfigManager] = None,
    ) -> None:
        self.storage = storage
        self.notifier = notifier
        self.config = config if config is not None else get_config_manager()
        self._occurrences: Memoizer[OccurrenceKey, List[Occurrence]] = Memoizer(self._generate)
        self._states: Dict[str, ProjectState] = {}

    # =========================================================================
    # Settings
    # =========================================================================

    @property
    def batch_size(self) -> int:
        return self.config.get_int("generation_batch_size", DEFAULT_GENERATION_BATCH_SIZE)

    @property
    def series_cap(self) -> int:
        return self.config.get_int("series_estimate_cap", DEFAULT_SERIES_ESTIMATE_CAP)

    @property
    def continuous_target(self) -> int:
        return self.config.get_int("continuous_target_count", DEFAULT_CONTINUOUS_TARGET_COUNT)

    @property
    def ceiling(self) -> int:
        return self.config.get_int("hard_occurrence_ceiling", HARD_OCCURRENCE_CEILING)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _notify(self, title: str, description: str = "", variant=NotificationVariant.SUCCESS) -> None:
        if self.notifier is not None:
            self.notifier.notify(Notification(title=title, description=description, variant=variant))

    def _fail(self, title: str, error: str, **extra: Any) -> OperationResult:
        self._notify(title, error, NotificationVariant.DESTRUCTIVE)
        return OperationResult(success=False, error=error, **extra)

    def _storage_failure(self, title: str, exc: Exception) -> OperationResult:
        logger.error("%s: %s", title, exc, exc_info=True)
        return self._fail(title, str(exc))

    @staticmethod
    def _generate(key: OccurrenceKey) -> List[Occurrence]:
        _, config, start, end, count = key
        return generate_occurrences(config, start, end, max_occurrences=count)

    def _series_end(self, project: Project, target_date: Optional[date] = None) -> date:
        if project.continuous or project.end_date is None:
            end = add_days(project.start_date, DEFAULT_CONTINUOUS_RUNWAY_DAYS)
            return max(end, target_date) if target_date else end
        return project.end_date

    def series_occurrences(
        self, project: Project, config: RecurrenceConfig, count: int, target_date: Optional[date] = None
    ) -> List[Occurrence]:
        """The first ``count`` occurrences of the project's series (memoized)."""
        key = (project.id, config, project.start_date, self._series_end(project, target_date), count)
        return self._occurrences.get(key)

    def invalidate(self, project_id: str) -> None:
        """Forget memoized occurrences and derived state for a project."""
        self._occurrences.invalidate_where(lambda key: key[0] == project_id)
        self._states.pop(project_id, None)

    def state(self, project_id: str) -> Optional[ProjectState]:
        """Derived state from the most recent ``load``."""
        return self._states.get(project_id)

    async def _create_occurrences(
        self,
        project: Project,
        occurrences: List[Occurrence],
        name: str,
        hours: float,
    ) -> int:
        """Persist occurrences concurrently. Raises GenerationError on any failure."""
        phases = [
            Phase(
                project_id=project.id,
                name=f"{name} {occurrence.number}",
                end_date=occurrence.date,
                time_allocation_hours=hours,
            )
            for occurrence in occurrences
        ]
        results = await asyncio.gather(
            *(self.storage.create_phase(phase, silent=True) for phase in phases),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        created = len(results) - len(failures)
        if failures:
            logger.error(
                "Occurrence generation for project %s: %d created, %d failed (%s)",
                project.id, created, len(failures), failures[0],
            )
            raise GenerationError(
                f"Failed to create {len(failures)} of {len(results)} occurrences",
                created=created,
                failed=len(failures),
            )
        logger.debug("Generated %d occurrences for project %s", created, project.id)
        return created

    @staticmethod
    def _series_source(detection: Detection) -> Optional[Tuple[RecurrenceConfig, str, float]]:
        if isinstance(detection, TemplateDetection):
            template = detection.template
            return template.recurring_config, template.name, template.time_allocation_hours
        if isinstance(detection, LegacyNumberedDetection):
            return detection.config, detection.base_name, detection.instances[0].time_allocation_hours
        return None

    def _gate(self, project: Project, existing: List[Phase], hours: float, exclude_id: Optional[str] = None) -> Optional[BudgetCheck]:
        """Budget gate for bounded projects. Continuous projects have no fixed budget."""
        if project.continuous:
            return None
        return would_exceed_budget(existing, hours, project.estimated_hours, exclude_id=exclude_id)

    # =========================================================================
    # Derived state
    # =========================================================================

    async def load(self, project: Project) -> ProjectState:
        """Rebuild the project's derived state from storage."""
        phases = await self.storage.list_phases_for_project(project.id)
        state = ProjectState(
            phases=phases,
            detection=detect_recurring_pattern(phases),
            materialized=numbered_instances(phases),
        )
        self._states[project.id] = state
        return state

    # =========================================================================
    # Lazy generation
    # =========================================================================

    async def ensure_occurrences_available(
        self,
        project: Project,
        target_date: Optional[date] = None,
    ) -> OperationResult:
        """
        Materialize the next batch of occurrences if the series is short.

        For continuous projects the target is an estimate for one year of
        runway, capped at 500 and then at 26. For bounded projects it is the
        whole series up to the project end, so every occurrence the budget
        gate charged for is eventually materialized. A ``target_date`` past
        the last occurrence also triggers a batch. Each call creates at most
        one batch, silently.

        Raises:
            GenerationError: If some creates in the batch failed. Occurrences
                that were persisted are kept.
        """
        state = await self.load(project)
        source = self._series_source(state.detection)
        if source is None:
            return OperationResult(success=True)
        config, name, hours = source

        current = state.materialized_count
        if current >= self.ceiling:
            logger.warning("Occurrence limit reached (%d) for project %s", self.ceiling, project.id)
            return OperationResult(success=True)

        if project.continuous or project.end_date is None:
            estimate = estimate_occurrence_count(config, DEFAULT_CONTINUOUS_RUNWAY_DAYS)
            target = min(self.continuous_target, estimate, self.series_cap)
        else:
            # Whole series up to the project end.
            target = min(len(generate_for_project(config, project)), self.series_cap, self.ceiling)

        needs_more = current < target
        needs_coverage = (
            target_date is not None and current > 0 and state.materialized[-1].end_date < target_date
        )
        if not needs_more and not needs_coverage:
            return OperationResult(success=True)

        wanted = target - current if needs_more else self.batch_size
        batch = min(wanted, self.batch_size, self.ceiling - current)
        occurrences = self.series_occurrences(project, config, current + batch, target_date)
        new = occurrences[current:current + batch]
        if not new:
            return OperationResult(success=True)

        created = await self._create_occurrences(project, new, name, hours)
        await self.load(project)
        return OperationResult(success=True, created=created)

    # =========================================================================
    # Recurring series
    # =========================================================================

    async def create_recurring_template(
        self,
        project: Project,
        name: str,
        hours: float,
        config: RecurrenceConfig,
        confirm: bool = False,
    ) -> OperationResult:
        """
        Create the project's recurring template and its first occurrences.

        Existing split phases, milestones or a previous template must be
        deleted first; without ``confirm`` the result asks for confirmation
        and nothing changes.
        """
        errors = validate_recurrence_config(config)
        if hours <= 0:
            errors.append("Recurring phase must have positive time allocation per occurrence")
        if not name or not name.strip():
            errors.append("Name is required for all phases.")
        if errors:
            return self._fail("Invalid recurrence", "; ".join(errors), errors=errors)

        state = await self.load(project)
        if state.phases and not confirm:
            kind = "split phases" if state.split_phases else "existing milestones"
            return OperationResult(
                success=False,
                error=f"Project has {kind}. Confirm to delete them and create a recurring series.",
                requires_confirmation=True,
            )

        check = None
        if not project.continuous:
            count = len(generate_for_project(config, project))
            check = self._gate(project, [], count * hours)
            if check is not None and check.would_exceed:
                return self._fail("Budget exceeded", check.error, budget=check)

        try:
            if state.phases:
                await self.storage.delete_phases([p.id for p in state.phases])
                logger.info("Deleted %d phases before switching to recurring", len(state.phases))
            template = await self.storage.create_phase(
                Phase(
                    project_id=project.id,
                    name=name.strip(),
                    end_date=project.end_date or project.start_date,
                    time_allocation_hours=hours,
                    is_recurring=True,
                    recurring_config=config,
                )
            )
        except PhasekitError as e:
            return self._storage_failure("Failed to create recurring milestones", e)
        finally:
            self.invalidate(project.id)

        try:
            generated = await self.ensure_occurrences_available(project)
        except GenerationError as e:
            return self._fail(
                "Recurring milestones partially created", str(e), created=e.created, phases=[template]
            )

        self._notify("Recurring milestones created", describe_recurrence(config))
        return OperationResult(
            success=True,
            created=generated.created + 1,
            deleted=len(state.phases),
            phases=[template],
            budget=check,
        )

    async def update_recurring_load(
        self,
        project: Project,
        hours: float,
        mode: LoadUpdateMode = LoadUpdateMode.FORWARD,
        today: Optional[date] = None,
    ) -> OperationResult:
        """
        Change the hours of every occurrence of the recurring series.

        FORWARD updates the template and occurrences dated today or later;
        the budget gate charges the new hours for those and the current hours
        for the occurrences before today.
        BOTH deletes every materialized occurrence and regenerates the same
        number with the new hours, so no occurrence keeps the old rate.
        """
        today = today or date.today()
        if hours < 0:
            return self._fail("Invalid load", "Time allocation cannot be negative.")

        state = await self.load(project)
        if not isinstance(state.detection, TemplateDetection):
            return self._fail("No recurring series", "Project has no recurring template to update")
        template = state.detection.template
        config = template.recurring_config

        check = None
        if not project.continuous:
            count = len(generate_for_project(config, project))
            if mode == LoadUpdateMode.FORWARD:
                # Occurrences before today keep their current hours.
                past = [p for p in state.materialized if p.end_date < today]
                check = self._gate(project, past, max(count - len(past), 0) * hours)
            else:
                check = self._gate(project, [], count * hours)
            if check.would_exceed:
                return self._fail("Budget exceeded", check.error, budget=check)

        try:
            await self.storage.update_phase(template.id, {"time_allocation_hours": hours})
            if mode == LoadUpdateMode.FORWARD:
                future = [p for p in state.materialized if p.end_date >= today]
                for phase in future:
                    await self.storage.update_phase(phase.id, {"time_allocation_hours": hours}, silent=True)
                result = OperationResult(success=True, updated=len(future) + 1, budget=check)
            else:
                previous = state.materialized_count
                await self.storage.delete_phases([p.id for p in state.materialized])
                count = min(max(previous, 1), self.ceiling)
                occurrences = self.series_occurrences(project, config, count)[:previous]
                created = await self._create_occurrences(project, occurrences, template.name, hours)
                result = OperationResult(
                    success=True, updated=1, deleted=previous, created=created, budget=check
                )
        except PhasekitError as e:
            return self._storage_failure("Failed to update recurring load", e)
        finally:
            self.invalidate(project.id)

        await self.load(project)
        self._notify("Recurring load updated", f"{hours:g} hours per occurrence ({mode.value})")
        return result

    async def delete_recurring_series(self, project: Project) -> OperationResult:
        """Delete the template (or legacy series) and every occurrence."""
        state = await self.load(project)
        if isinstance(state.detection, NoDetection):
            return self._fail("No recurring series", "Project has no recurring milestones")

        ids = [p.id for p in state.materialized]
        if isinstance(state.detection, TemplateDetection):
            ids.append(state.detection.template.id)

        try:
            await self.storage.delete_phases(ids)
        except PhasekitError as e:
            return self._storage_failure("Failed to delete recurring milestones", e)
        finally:
            self.invalidate(project.id)

        self._notify("Recurring milestones deleted", f"{len(ids)} milestones removed")
        return OperationResult(success=True, deleted=len(ids))

    # =========================================================================
    # Split phases
    # =========================================================================

    async def split_estimate(self, project: Project, confirm: bool = False) -> OperationResult:
        """Replace the project estimate with two phases split at the midpoint."""
        if project.continuous or project.end_date is None:
            return self._fail("Cannot split", "Continuous projects cannot be split into phases")

        state = await self.load(project)
        if state.split_phases:
            return self._fail("Cannot split", "Project already has phases")
        if state.phases and not confirm:
            return OperationResult(
                success=False,
                error="Project has milestones. Confirm to delete them and split into phases.",
                requires_confirmation=True,
            )

        drafts = calculate_phase_split(project.start_date, project.end_date, project.estimated_hours)
        check = self._gate(project, [], sum(d.time_allocation_hours for d in drafts))
        if check.would_exceed:
            return self._fail("Budget exceeded", check.error, budget=check)

        created: List[Phase] = []
        try:
            if state.phases:
                await self.storage.delete_phases([p.id for p in state.phases])
            for draft in drafts:
                created.append(await self.storage.create_phase(draft.to_phase(project.id)))
        except PhasekitError as e:
            return self._storage_failure("Failed to split estimate", e)
        finally:
            self.invalidate(project.id)

        self._notify("Estimate split", "Project split into 2 phases")
        return OperationResult(
            success=True, created=len(created), deleted=len(state.phases), phases=created
        )

    async def add_phase(self, project: Project) -> OperationResult:
        """Shrink the last phase and append a new empty phase after it."""
        if project.end_date is None:
            return self._fail("Cannot add phase", "Project has no end date")

        state = await self.load(project)
        splits = state.split_phases
        try:
            dates = calculate_new_phase_dates(splits, project.end_date)
        except InvalidOperationError as e:
            return self._fail("Cannot add phase", str(e))

        last = max(splits, key=lambda p: (p.effective_start, p.end_date))
        if dates.last_phase_new_end < last.effective_start:
            return self._fail("Cannot add phase", f'Not enough room after "{last.name}"')

        new_phase = Phase(
            project_id=project.id,
            name=DEFAULT_PHASE_NAME_TEMPLATE.format(number=len(splits) + 1),
            start_date=dates.new_phase_start,
            end_date=dates.new_phase_end,
        )
        try:
            await self.storage.update_phase(last.id, {"end_date": dates.last_phase_new_end})
            await self.storage.create_phase(new_phase)
        except PhasekitError as e:
            return self._storage_failure("Failed to add phase", e)
        finally:
            self.invalidate(project.id)

        self._notify("Phase added", new_phase.name)
        return OperationResult(success=True, created=1, updated=1, phases=[new_phase])

    # =========================================================================
    # Milestones and property edits
    # =========================================================================

    async def add_milestone(
        self, project: Project, name: str, end_date: date, hours: float = 0
    ) -> OperationResult:
        """Add a pure milestone, subject to validation and the budget gate."""
        state = await self.load(project)
        if check_exclusivity(state.phases).has_recurring_template:
            return self._fail(
                "Cannot add milestone",
                "Project has a recurring series. Delete it before adding milestones.",
            )

        milestone = Phase(
            project_id=project.id, name=name, end_date=end_date, time_allocation_hours=hours
        )
        errors = validate_phase_dates(milestone, project)
        if errors:
            return self._fail("Invalid milestone", "; ".join(errors), errors=errors)

        check = self._gate(project, state.budgeted_phases, hours)
        if check is not None and check.would_exceed:
            return self._fail("Budget exceeded", check.error, budget=check)

        try:
            await self.storage.create_phase(milestone)
        except PhasekitError as e:
            return self._storage_failure("Failed to add milestone", e)
        finally:
            self.invalidate(project.id)

        self._notify("Milestone added", milestone.name)
        return OperationResult(success=True, created=1, phases=[milestone], budget=check)

    async def update_phase_property(
        self,
        project: Project,
        phase_id: str,
        today: Optional[date] = None,
        **changes: Any,
    ) -> OperationResult:
        """
        Edit a phase's name, dates or hours.

        Hours go through the budget gate with the phase itself excluded.
        Moving a split phase's end date cascades to the phases after it; the
        edit is rejected if that pushes a phase past the project end.
        """
        today = today or date.today()
        state = await self.load(project)
        phase = next((p for p in state.phases if p.id == phase_id), None)
        if phase is None:
            return self._fail("Phase not found", f"Phase {phase_id} not found")

        candidate = phase.model_copy(update=changes)
        errors = validate_phase_dates(candidate, project)
        if "end_date" in changes and changes["end_date"] != phase.end_date:
            errors.extend(validate_end_date_not_in_past(candidate, changes["end_date"], today))
        if errors:
            return self._fail("Invalid change", "; ".join(errors), errors=errors)

        check = None
        if "time_allocation_hours" in changes and not phase.is_recurring_template:
            check = self._gate(
                project, state.budgeted_phases, changes["time_allocation_hours"], exclude_id=phase_id
            )
            if check is not None and check.would_exceed:
                return self._fail("Budget exceeded", check.error, budget=check)

        shifted: List[Phase] = []
        if "end_date" in changes and phase.start_date is not None:
            originals = {p.id: p for p in state.split_phases}
            adjusted = cascade_phase_adjustments(state.split_phases, phase_id, changes["end_date"])
            shifted = [
                p for p in adjusted
                if p.id != phase_id
                and (p.start_date, p.end_date) != (originals[p.id].start_date, originals[p.id].end_date)
            ]
            if not project.continuous and project.end_date is not None:
                errors = [
                    f'"{p.name}" would be pushed to {p.end_date}. {VALIDATION_AFTER_PROJECT_END}'
                    for p in shifted
                    if p.end_date > project.end_date
                ]
                if errors:
                    return self._fail("Invalid change", "; ".join(errors), errors=errors)

        try:
            await self.storage.update_phase(phase_id, changes)
            for other in shifted:
                await self.storage.update_phase(
                    other.id, {"start_date": other.start_date, "end_date": other.end_date}
                )
        except PhasekitError as e:
            return self._storage_failure("Failed to update phase", e)
        finally:
            self.invalidate(project.id)

        self._notify("Phase updated", candidate.name)
        return OperationResult(
            success=True, updated=1 + len(shifted), phases=[candidate, *shifted], budget=check
        )
