"""
Managers for phasekit.

This package contains the stateful collaborators around the pure rules:
- PhaseStorage: persistence verbs (in-memory and JSON implementations)
- Notifier: user-facing notifications
- Memoizer: caller-invalidated memoization
- MilestoneWorkflow: editing workflow state machine
- LifecycleManager: recurring milestone and phase workflows
"""

from phasekit.managers.cache import Memoizer
from phasekit.managers.lifecycle_manager import LifecycleManager, OperationResult, ProjectState
from phasekit.managers.notifications import (
    ClickNotifier,
    Notification,
    NotificationVariant,
    Notifier,
    RecordingNotifier,
)
from phasekit.managers.storage_manager import InMemoryPhaseStorage, JsonPhaseStorage, PhaseStorage
from phasekit.managers.workflow import LoadUpdateMode, MilestoneWorkflow, WorkflowStateName

__all__ = [
    "Memoizer",
    "LifecycleManager",
    "OperationResult",
    "ProjectState",
    "ClickNotifier",
    "Notification",
    "NotificationVariant",
    "Notifier",
    "RecordingNotifier",
    "InMemoryPhaseStorage",
    "JsonPhaseStorage",
    "PhaseStorage",
    "LoadUpdateMode",
    "MilestoneWorkflow",
    "WorkflowStateName",
]
