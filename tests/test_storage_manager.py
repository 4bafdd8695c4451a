"""
Tests for the storage collaborators.

These tests verify that the in-memory and JSON stores implement the phase
persistence verbs the same way, and that the JSON store reads and writes its
files atomically.
"""
import json
import tempfile
from datetime import date
from pathlib import Path

import pytest

from phasekit.exceptions import ConfigurationError, NotFoundError, StorageError
from phasekit.managers.storage_manager import InMemoryPhaseStorage, JsonPhaseStorage
from phasekit.models.files import ConfigFile, PhasesFile
from phasekit.models.project import Holiday


@pytest.fixture
def temp_phasekit_dir():
    """Create a temporary .phasekit/ directory for testing."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def json_storage(temp_phasekit_dir):
    """Create a JsonPhaseStorage instance with temp directory."""
    return JsonPhaseStorage(data_dir=temp_phasekit_dir)


@pytest.fixture(params=["memory", "json"])
def any_storage(request, temp_phasekit_dir):
    """Both storage implementations."""
    if request.param == "memory":
        return InMemoryPhaseStorage()
    return JsonPhaseStorage(data_dir=temp_phasekit_dir)


class TestJsonStorageInitialization:
    """Test JsonPhaseStorage initialization."""

    def test_creates_data_dir(self, temp_phasekit_dir):
        """Test that JsonPhaseStorage creates the .phasekit/ directory."""
        nested_dir = temp_phasekit_dir / "nested" / "phasekit"
        JsonPhaseStorage(data_dir=nested_dir)
        assert nested_dir.exists()

    def test_default_path(self, monkeypatch, tmp_path):
        """Test JsonPhaseStorage uses .phasekit/ in current directory by default."""
        monkeypatch.chdir(tmp_path)
        storage = JsonPhaseStorage()
        assert storage.data_dir == Path(".phasekit")
        assert storage.data_dir.exists()

    def test_data_path_is_a_file(self, temp_phasekit_dir):
        """Test that a file in place of the data directory is rejected."""
        blocker = temp_phasekit_dir / "not_a_dir"
        blocker.write_text("")
        with pytest.raises(ConfigurationError, match="is not a directory"):
            JsonPhaseStorage(data_dir=blocker)


class TestPhaseVerbs:
    """Test the phase persistence verbs on both implementations."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, any_storage, mock_data):
        """Test that created phases are listed for their project only."""
        mine = mock_data.create_phase(name="Mine")
        theirs = mock_data.create_phase(name="Theirs", project_id="project-2")
        await any_storage.create_phase(mine)
        await any_storage.create_phase(theirs)

        phases = await any_storage.list_phases_for_project("project-1")
        assert [p.name for p in phases] == ["Mine"]

    @pytest.mark.asyncio
    async def test_update_phase(self, any_storage, mock_data):
        phase = await any_storage.create_phase(mock_data.create_phase(hours=2))
        await any_storage.update_phase(phase.id, {"time_allocation_hours": 5, "end_date": date(2025, 1, 20)})

        [updated] = await any_storage.list_phases_for_project("project-1")
        assert updated.time_allocation_hours == 5
        assert updated.end_date == date(2025, 1, 20)

    @pytest.mark.asyncio
    async def test_invalid_update_raises_storage_error(self, any_storage, mock_data):
        phase = await any_storage.create_phase(mock_data.create_phase())
        with pytest.raises(StorageError):
            await any_storage.update_phase(phase.id, {"end_date": "not a date"})

    @pytest.mark.asyncio
    async def test_update_missing_phase(self, any_storage):
        with pytest.raises(NotFoundError):
            await any_storage.update_phase("missing", {"name": "x"})

    @pytest.mark.asyncio
    async def test_delete_phase(self, any_storage, mock_data):
        phase = await any_storage.create_phase(mock_data.create_phase())
        await any_storage.delete_phase(phase.id)
        assert await any_storage.list_phases_for_project("project-1") == []

    @pytest.mark.asyncio
    async def test_delete_missing_phase(self, any_storage):
        with pytest.raises(NotFoundError):
            await any_storage.delete_phase("missing")

    @pytest.mark.asyncio
    async def test_delete_phases(self, any_storage, mock_data):
        phases = mock_data.numbered_milestones("Standup", [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20)])
        for phase in phases:
            await any_storage.create_phase(phase, silent=True)
        await any_storage.delete_phases([phases[0].id, phases[2].id])

        remaining = await any_storage.list_phases_for_project("project-1")
        assert [p.name for p in remaining] == ["Standup 2"]


class TestJsonFiles:
    """Test phases.json and config.json handling."""

    def test_load_when_file_does_not_exist(self, json_storage):
        """Test loading phases.json when it doesn't exist returns an empty model."""
        result = json_storage.load()
        assert isinstance(result, PhasesFile)
        assert result.projects == []
        assert result.phases == []

    @pytest.mark.asyncio
    async def test_template_config_is_stored_camel_case(self, json_storage, mock_data):
        await json_storage.create_phase(mock_data.create_template(mock_data.monthly_weekday(6, 5)))

        with open(json_storage.phases_path) as f:
            data = json.load(f)
        assert data["phases"][0]["recurring_config"] == {
            "type": "monthly",
            "interval": 1,
            "monthlyPattern": "dayOfWeek",
            "monthlyWeekOfMonth": 6,
            "monthlyDayOfWeek": 5,
        }
        [restored] = await json_storage.list_phases_for_project("project-1")
        assert restored.recurring_config == mock_data.monthly_weekday(6, 5)

    def test_corrupt_file_raises(self, json_storage):
        json_storage.phases_path.write_text("{not json")
        with pytest.raises(StorageError, match="phases.json"):
            json_storage.load()

    def test_atomic_write_leaves_no_temp_files(self, json_storage, mock_data):
        json_storage.save(PhasesFile(projects=[mock_data.create_project()]))
        leftovers = list(json_storage.data_dir.glob(".tmp_phasekit_*"))
        assert leftovers == []

    def test_config_round_trip(self, json_storage):
        assert json_storage.load_config() == ConfigFile()
        json_storage.save_config(ConfigFile(generation_batch_size=5))
        assert json_storage.load_config().generation_batch_size == 5

    def test_holidays(self, json_storage):
        holiday = Holiday(name="New Year", start_date=date(2025, 1, 1), end_date=date(2025, 1, 1))
        json_storage.save(PhasesFile(holidays=[holiday]))
        assert json_storage.list_holidays() == [holiday]


class TestProjects:
    """Test project lookups."""

    def test_get_project_by_id_or_name(self, json_storage, mock_data):
        project = mock_data.create_project(name="Website")
        json_storage.save_project(project)
        assert json_storage.get_project(project.id) == project
        assert json_storage.get_project("Website") == project

    def test_save_project_replaces(self, json_storage, mock_data):
        project = mock_data.create_project(budget=10)
        json_storage.save_project(project)
        json_storage.save_project(project.model_copy(update={"estimated_hours": 40}))
        assert len(json_storage.load().projects) == 1
        assert json_storage.get_project(project.id).estimated_hours == 40

    def test_missing_project(self, json_storage):
        with pytest.raises(NotFoundError, match="Project 'Nope' not found"):
            json_storage.get_project("Nope")
