"""
Milestone editing workflow for phasekit.

A single state object replaces the loose set of editing flags a UI would keep.
Every transition is an explicit method; anything else raises
``InvalidOperationError``.

    idle --begin_recurrence--> configuringRecurrence --finish--> idle
    idle --begin_split--> splitting --finish--> idle
    idle --begin_load_edit--> editingLoad(forward|both) --finish--> idle
    configuringRecurrence|splitting --require_confirmation--> confirmingOverwrite
    confirmingOverwrite --confirm--> (state it came from, confirmed)
    any --cancel--> idle
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from phasekit.exceptions import InvalidOperationError

logger = logging.getLogger(__name__)


class WorkflowStateName(str, Enum):
    IDLE = "idle"
    CONFIGURING_RECURRENCE = "configuringRecurrence"
    CONFIRMING_OVERWRITE = "confirmingOverwrite"
    EDITING_LOAD = "editingLoad"
    SPLITTING = "splitting"


class LoadUpdateMode(str, Enum):
    """How a recurring load change is applied."""

    FORWARD = "forward"
    BOTH = "both"


@dataclass(frozen=True)
class WorkflowState:
    name: WorkflowStateName = WorkflowStateName.IDLE
    load_mode: Optional[LoadUpdateMode] = None
    confirmed: bool = False
    pending_message: Optional[str] = None
    resume_to: Optional[WorkflowStateName] = None


class MilestoneWorkflow:
    """State machine for the milestone editing workflows of one project."""

    def __init__(self) -> None:
        self._state = WorkflowState()

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def name(self) -> WorkflowStateName:
        return self._state.name

    def _require(self, *allowed: WorkflowStateName) -> None:
        if self._state.name not in allowed:
            raise InvalidOperationError(
                f"Cannot do that while {self._state.name.value}"
            )

    def _move(self, state: WorkflowState) -> WorkflowState:
        logger.debug("Workflow %s -> %s", self._state.name.value, state.name.value)
        self._state = state
        return state

    def begin_recurrence(self) -> WorkflowState:
        self._require(WorkflowStateName.IDLE)
        return self._move(WorkflowState(name=WorkflowStateName.CONFIGURING_RECURRENCE))

    def begin_split(self) -> WorkflowState:
        self._require(WorkflowStateName.IDLE)
        return self._move(WorkflowState(name=WorkflowStateName.SPLITTING))

    def begin_load_edit(self, mode: LoadUpdateMode = LoadUpdateMode.FORWARD) -> WorkflowState:
        self._require(WorkflowStateName.IDLE)
        return self._move(WorkflowState(name=WorkflowStateName.EDITING_LOAD, load_mode=mode))

    def set_load_mode(self, mode: LoadUpdateMode) -> WorkflowState:
        self._require(WorkflowStateName.EDITING_LOAD)
        return self._move(replace(self._state, load_mode=mode))

    def require_confirmation(self, message: str) -> WorkflowState:
        """Pause a mode switch until the user confirms deleting existing phases."""
        self._require(WorkflowStateName.CONFIGURING_RECURRENCE, WorkflowStateName.SPLITTING)
        return self._move(
            WorkflowState(
                name=WorkflowStateName.CONFIRMING_OVERWRITE,
                pending_message=message,
                resume_to=self._state.name,
            )
        )

    def confirm(self) -> WorkflowState:
        self._require(WorkflowStateName.CONFIRMING_OVERWRITE)
        return self._move(WorkflowState(name=self._state.resume_to, confirmed=True))

    def finish(self) -> WorkflowState:
        self._require(
            WorkflowStateName.CONFIGURING_RECURRENCE,
            WorkflowStateName.EDITING_LOAD,
            WorkflowStateName.SPLITTING,
        )
        return self._move(WorkflowState())

    def cancel(self) -> WorkflowState:
        return self._move(WorkflowState())

    async def run(self, operation: Callable[..., Awaitable[Any]], confirm: bool = False) -> Any:
        """
        Run the operation of the workflow that was begun.

        ``operation`` is awaited with ``confirm=False`` first. A result that
        asks for confirmation moves to confirmingOverwrite; with ``confirm``
        the operation is awaited again confirmed, otherwise the workflow is
        cancelled and that result returned. The workflow always ends idle.
        """
        self._require(
            WorkflowStateName.CONFIGURING_RECURRENCE,
            WorkflowStateName.EDITING_LOAD,
            WorkflowStateName.SPLITTING,
        )
        result = await operation(confirm=False)
        if result.requires_confirmation:
            self.require_confirmation(result.error)
            if not confirm:
                self.cancel()
                return result
            self.confirm()
            result = await operation(confirm=True)

        if result.success:
            self.finish()
        else:
            self.cancel()
        return result
