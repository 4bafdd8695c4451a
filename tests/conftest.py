"""
Test fixtures for the phasekit test suite.

Provides:
- Temporary directory fixtures (isolated from the working .phasekit/)
- Mock data builders for projects, phases and recurrence configs
- A storage double that fails selected creates
"""

import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator, Iterable, Optional

import pytest

from phasekit.constants import ConfigManager, reset_config_manager
from phasekit.exceptions import StorageError
from phasekit.managers.notifications import RecordingNotifier
from phasekit.managers.storage_manager import InMemoryPhaseStorage
from phasekit.models.phase import Phase, RecurrenceConfig
from phasekit.models.project import Project


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't modify the working .phasekit/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="phasekit_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary .phasekit/ directory and return its path."""
    path = temp_dir / ".phasekit"
    path.mkdir(parents=True)
    yield path


@pytest.fixture(autouse=True)
def isolated_config(temp_dir: Path):
    """Keep the global ConfigManager away from any real config.json."""
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def default_config(temp_dir: Path) -> ConfigManager:
    """ConfigManager pointing at a config.json that does not exist."""
    return ConfigManager(config_path=temp_dir / "missing" / "config.json")


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building mock phasekit objects for testing."""

    @staticmethod
    def create_project(
        name: str = "Test Project",
        start: date = date(2025, 1, 1),
        end: Optional[date] = date(2025, 1, 31),
        budget: float = 100,
        continuous: bool = False,
        project_id: str = "project-1",
    ) -> Project:
        """Create a mock Project for testing."""
        return Project(
            id=project_id,
            name=name,
            start_date=start,
            end_date=end,
            estimated_hours=budget,
            continuous=continuous,
        )

    @staticmethod
    def create_phase(
        name: str = "Test Phase",
        end: date = date(2025, 1, 31),
        start: Optional[date] = None,
        hours: float = 0,
        project_id: str = "project-1",
        phase_id: Optional[str] = None,
        is_recurring: Optional[bool] = None,
        config: Optional[RecurrenceConfig] = None,
    ) -> Phase:
        """Create a mock Phase (a milestone when ``start`` is omitted)."""
        kwargs = {}
        if phase_id:
            kwargs["id"] = phase_id
        return Phase(
            project_id=project_id,
            name=name,
            start_date=start,
            end_date=end,
            time_allocation_hours=hours,
            is_recurring=is_recurring,
            recurring_config=config,
            **kwargs,
        )

    @staticmethod
    def create_template(
        config: RecurrenceConfig,
        name: str = "Standup",
        hours: float = 1,
        end: date = date(2025, 12, 31),
        project_id: str = "project-1",
    ) -> Phase:
        """Create a recurring template phase."""
        return Phase(
            id="template-1",
            project_id=project_id,
            name=name,
            end_date=end,
            time_allocation_hours=hours,
            is_recurring=True,
            recurring_config=config,
        )

    @staticmethod
    def weekly(weekday: int = 1, interval: int = 1) -> RecurrenceConfig:
        return RecurrenceConfig(type="weekly", interval=interval, weekly_day_of_week=weekday)

    @staticmethod
    def daily(interval: int = 1) -> RecurrenceConfig:
        return RecurrenceConfig(type="daily", interval=interval)

    @staticmethod
    def monthly_date(day: int, interval: int = 1) -> RecurrenceConfig:
        return RecurrenceConfig(
            type="monthly", interval=interval, monthly_pattern="date", monthly_date=day
        )

    @staticmethod
    def monthly_weekday(week: int, weekday: int, interval: int = 1) -> RecurrenceConfig:
        return RecurrenceConfig(
            type="monthly",
            interval=interval,
            monthly_pattern="dayOfWeek",
            monthly_week_of_month=week,
            monthly_day_of_week=weekday,
        )

    @staticmethod
    def numbered_milestones(
        base: str, dates: Iterable[date], hours: float = 1, project_id: str = "project-1"
    ) -> list:
        """Legacy-style materialized occurrences named ``base 1``, ``base 2``..."""
        return [
            Phase(project_id=project_id, name=f"{base} {number}", end_date=day,
                  time_allocation_hours=hours)
            for number, day in enumerate(dates, start=1)
        ]


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test object creation."""
    return MockDataBuilder()


# =============================================================================
# Collaborator Fixtures
# =============================================================================


class FlakyPhaseStorage(InMemoryPhaseStorage):
    """In-memory storage whose creates fail for names listed in ``fail_names``."""

    def __init__(self, phases=None, fail_names=()) -> None:
        super().__init__(phases)
        self.fail_names = set(fail_names)

    async def create_phase(self, phase: Phase, silent: bool = False) -> Phase:
        if phase.name in self.fail_names:
            raise StorageError(f"Failed to create {phase.name}")
        return await super().create_phase(phase, silent=silent)


@pytest.fixture
def flaky_storage():
    """Factory for storage whose creates fail for the given phase names."""
    return FlakyPhaseStorage


@pytest.fixture
def storage() -> InMemoryPhaseStorage:
    return InMemoryPhaseStorage()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def bounded_project(mock_data: MockDataBuilder) -> Project:
    """Jan 2025 project with a 28h budget."""
    return mock_data.create_project(budget=28)


@pytest.fixture
def continuous_project(mock_data: MockDataBuilder) -> Project:
    """Continuous project starting Wed Jan 1 2025."""
    return mock_data.create_project(end=None, continuous=True, budget=0)
