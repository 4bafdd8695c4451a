"""
Storage collaborators for phasekit.

The lifecycle manager only talks to ``PhaseStorage``. Two implementations ship:
an in-memory store for draft projects and tests, and a JSON store that writes
``phases.json`` in the .phasekit/ directory atomically.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from phasekit.exceptions import ConfigurationError, NotFoundError, StorageError
from phasekit.models.files import ConfigFile, PhasesFile
from phasekit.models.phase import Phase
from phasekit.models.project import Holiday, Project

logger = logging.getLogger(__name__)


class PhaseStorage(ABC):
    """Persistence verbs the core is allowed to use.

    ``silent`` marks background writes (lazy occurrence generation) that must
    not be reported to the user.
    """

    @abstractmethod
    async def create_phase(self, phase: Phase, silent: bool = False) -> Phase:
        """Persist a new phase and return it."""

    @abstractmethod
    async def update_phase(self, phase_id: str, changes: Dict[str, Any], silent: bool = False) -> None:
        """Apply a partial update to a phase."""

    @abstractmethod
    async def delete_phase(self, phase_id: str, silent: bool = False) -> None:
        """Delete one phase."""

    @abstractmethod
    async def list_phases_for_project(self, project_id: str) -> List[Phase]:
        """Return every phase owned by the project."""

    async def delete_phases(self, phase_ids: Iterable[str]) -> None:
        """Delete a set of phases."""
        for phase_id in list(phase_ids):
            await self.delete_phase(phase_id, silent=True)


def _apply_changes(phase: Phase, changes: Dict[str, Any]) -> Phase:
    try:
        return Phase.model_validate({**phase.model_dump(), **changes})
    except ValidationError as e:
        raise StorageError(f"Invalid update for phase {phase.id}: {e}")


class InMemoryPhaseStorage(PhaseStorage):
    """Keeps phases in a dict. Used for draft projects and tests."""

    def __init__(self, phases: Optional[Iterable[Phase]] = None) -> None:
        self._phases: Dict[str, Phase] = {phase.id: phase for phase in phases or []}

    async def create_phase(self, phase: Phase, silent: bool = False) -> Phase:
        self._phases[phase.id] = phase
        logger.log(logging.DEBUG if silent else logging.INFO, "Created phase %s", phase.name)
        return phase

    async def update_phase(self, phase_id: str, changes: Dict[str, Any], silent: bool = False) -> None:
        if phase_id not in self._phases:
            raise NotFoundError(f"Phase {phase_id} not found")
        self._phases[phase_id] = _apply_changes(self._phases[phase_id], changes)

    async def delete_phase(self, phase_id: str, silent: bool = False) -> None:
        if self._phases.pop(phase_id, None) is None:
            raise NotFoundError(f"Phase {phase_id} not found")

    async def list_phases_for_project(self, project_id: str) -> List[Phase]:
        return [phase for phase in self._phases.values() if phase.project_id == project_id]


class JsonPhaseStorage(PhaseStorage):
    """
    Persists projects and phases to phases.json in the .phasekit/ directory.

    Handles atomic writes to prevent data corruption.
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        """
        Initialize the store with a .phasekit/ directory path.

        Args:
            data_dir: Path to the .phasekit/ directory. Defaults to .phasekit/ in current directory.
        """
        self.data_dir = data_dir if data_dir else Path(".phasekit")
        self.phases_path = self.data_dir / "phases.json"
        if self.data_dir.exists() and not self.data_dir.is_dir():
            raise ConfigurationError(f"{self.data_dir} exists and is not a directory")
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically to prevent corruption.

        Raises:
            StorageError: If writing to file fails.
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=".tmp_phasekit_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    # =========================================================================
    # Files
    # =========================================================================

    def load(self) -> PhasesFile:
        """Load phases.json and return as PhasesFile model."""
        if not self.phases_path.exists():
            return PhasesFile()

        try:
            with open(self.phases_path, "r") as f:
                data = json.load(f)
            return PhasesFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load phases.json: {e}")

    def save(self, data: PhasesFile) -> None:
        """Save PhasesFile model to phases.json."""
        self._atomic_write(self.phases_path, data.model_dump(mode="json"))

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        file_path = self.data_dir / "config.json"
        if not file_path.exists():
            return ConfigFile()

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
            return ConfigFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        self._atomic_write(self.data_dir / "config.json", data.model_dump(mode="json"))

    # =========================================================================
    # Projects
    # =========================================================================

    def get_project(self, project_id: str) -> Project:
        """Find a project by id or by name.

        Raises:
            NotFoundError: If no project matches.
        """
        for project in self.load().projects:
            if project.id == project_id or project.name == project_id:
                return project
        raise NotFoundError(f"Project '{project_id}' not found")

    def save_project(self, project: Project) -> None:
        """Insert or replace a project."""
        data = self.load()
        data.projects = [p for p in data.projects if p.id != project.id] + [project]
        self.save(data)

    def list_holidays(self) -> List[Holiday]:
        return self.load().holidays

    # =========================================================================
    # Phases
    # =========================================================================

    async def create_phase(self, phase: Phase, silent: bool = False) -> Phase:
        data = self.load()
        data.phases.append(phase)
        self.save(data)
        logger.log(logging.DEBUG if silent else logging.INFO, "Created phase %s", phase.name)
        return phase

    async def update_phase(self, phase_id: str, changes: Dict[str, Any], silent: bool = False) -> None:
        data = self.load()
        for index, phase in enumerate(data.phases):
            if phase.id == phase_id:
                data.phases[index] = _apply_changes(phase, changes)
                self.save(data)
                return
        raise NotFoundError(f"Phase {phase_id} not found")

    async def delete_phase(self, phase_id: str, silent: bool = False) -> None:
        data = self.load()
        remaining = [phase for phase in data.phases if phase.id != phase_id]
        if len(remaining) == len(data.phases):
            raise NotFoundError(f"Phase {phase_id} not found")
        data.phases = remaining
        self.save(data)

    async def delete_phases(self, phase_ids: Iterable[str]) -> None:
        ids = set(phase_ids)
        data = self.load()
        data.phases = [phase for phase in data.phases if phase.id not in ids]
        self.save(data)

    async def list_phases_for_project(self, project_id: str) -> List[Phase]:
        return [phase for phase in self.load().phases if phase.project_id == project_id]
