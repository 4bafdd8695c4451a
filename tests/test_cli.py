"""
Tests for the phasekit command line interface.
"""
import pytest
from click.testing import CliRunner

from phasekit.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, data_dir):
    """Invoke the CLI against a temporary data directory."""

    def _invoke(*args):
        return runner.invoke(cli, ["--dir", str(data_dir), *args])

    return _invoke


def test_cli_registers_command_groups(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for group in ("recur", "budget", "phases", "project"):
        assert group in result.output


class TestRecurCommands:
    """Tests for the recur group."""

    def test_preview_weekly(self, invoke):
        result = invoke("recur", "preview", "-t", "weekly", "--weekday", "1",
                        "-s", "2025-01-01", "-e", "2025-01-14")
        assert result.exit_code == 0
        assert "Every week on Monday" in result.output
        assert "  #1    2025-01-06  Monday" in result.output
        assert "  #2    2025-01-13  Monday" in result.output

    def test_preview_last_friday(self, invoke):
        result = invoke("recur", "preview", "-t", "monthly", "--pattern", "dayOfWeek",
                        "--week-of-month", "6", "--month-weekday", "5",
                        "-s", "2025-02-01", "-e", "2025-02-28")
        assert result.exit_code == 0
        assert "2025-02-28  Friday" in result.output

    def test_preview_max(self, invoke):
        result = invoke("recur", "preview", "-t", "daily", "-s", "2025-01-01", "-m", "3")
        assert result.exit_code == 0
        assert "#3" in result.output
        assert "#4" not in result.output

    def test_preview_empty_range(self, invoke):
        result = invoke("recur", "preview", "-t", "weekly", "--weekday", "1",
                        "-s", "2025-01-01", "-e", "2025-01-03")
        assert "No occurrences in range." in result.output

    def test_preview_invalid_rule(self, invoke):
        result = invoke("recur", "preview", "-t", "weekly", "-s", "2025-01-01")
        assert result.exit_code == 1
        assert "Validation Error" in result.output

    def test_validate(self, invoke):
        result = invoke("recur", "validate", "-t", "weekly", "-i", "2", "--weekday", "1")
        assert result.exit_code == 0
        assert "Valid: Every 2 weeks on Monday" in result.output

    def test_validate_reports_problems(self, invoke):
        result = invoke("recur", "validate", "-t", "monthly", "--pattern", "date", "--month-date", "40")
        assert result.exit_code == 1
        assert "Monthly date must be between 1 and 31" in result.output
        assert "1 problem(s) found." in result.output

    def test_bad_date(self, invoke):
        result = invoke("recur", "preview", "-t", "daily", "-s", "someday")
        assert result.exit_code == 2
        assert "Invalid date format" in result.output


class TestBudgetCommands:
    """Tests for the budget group."""

    def test_over_budget(self, invoke):
        result = invoke("budget", "check", "-b", "20", "-x", "20", "-c", "5")
        assert result.exit_code == 1
        assert "Would exceed project budget by 5 hours" in result.output

    def test_fits(self, invoke):
        result = invoke("budget", "check", "-b", "20", "-x", "10", "-c", "5")
        assert result.exit_code == 0
        assert "Current allocation: 10h (50%)" in result.output
        assert "✓ Fits. 5h remaining." in result.output


class TestPhasesCommands:
    """Tests for the phases group."""

    def test_split(self, invoke):
        result = invoke("phases", "split", "-s", "2025-01-01", "-e", "2025-01-31", "-b", "28")
        assert result.exit_code == 0
        assert "Phase 1: 2025-01-01 -> 2025-01-16 (16 days, 14h)" in result.output
        assert "Phase 2: 2025-01-17 -> 2025-01-31 (15 days, 14h)" in result.output

    def test_split_backwards(self, invoke):
        result = invoke("phases", "split", "-s", "2025-01-31", "-e", "2025-01-01")
        assert result.exit_code == 1


class TestProjectCommands:
    """Tests for the project group against a real .phasekit/ directory."""

    @pytest.fixture
    def website(self, invoke):
        result = invoke("project", "create", "-n", "Website", "-s", "2025-01-01", "-e", "2025-01-31", "-b", "28")
        assert result.exit_code == 0
        return "Website"

    def test_create(self, invoke, data_dir):
        result = invoke("project", "create", "-n", "Website", "-s", "2025-01-01", "-e", "2025-01-31")
        assert result.exit_code == 0
        assert "Project 'Website' created successfully." in result.output
        assert (data_dir / "phases.json").exists()

    def test_create_validates_dates(self, invoke):
        result = invoke("project", "create", "-n", "Backwards", "-s", "2025-01-31", "-e", "2025-01-01")
        assert result.exit_code == 1
        assert "Project end date cannot be before its start date." in result.output

    def test_missing_project(self, invoke):
        result = invoke("project", "show", "Nope")
        assert result.exit_code == 1
        assert "Project 'Nope' not found" in result.output

    def test_recurring_series(self, invoke, website):
        result = invoke("project", "recur", website, "-n", "Standup", "-h", "7", "-t", "weekly", "--weekday", "1")
        assert result.exit_code == 0
        assert "Recurring milestones created: Every week on Monday" in result.output

        shown = invoke("project", "show", website)
        assert "Recurring: Standup, Every week on Monday, 7h each" in shown.output
        assert "Standup 4" in shown.output
        assert "Budget: 28h of 28h (100%)" in shown.output

    def test_recurring_over_budget(self, invoke, website):
        result = invoke("project", "recur", website, "-n", "Standup", "-h", "8", "-t", "weekly", "--weekday", "1")
        assert result.exit_code == 1
        assert "Would exceed project budget by 4 hours" in result.output

    def test_recur_over_phases_needs_yes(self, invoke, website):
        invoke("project", "split", website)
        result = invoke("project", "recur", website, "-n", "Standup", "-h", "1", "-t", "weekly", "--weekday", "1")
        assert result.exit_code == 1
        assert "(use --yes)" in result.output

        confirmed = invoke("project", "recur", website, "-n", "Standup", "-h", "1",
                           "-t", "weekly", "--weekday", "1", "--yes")
        assert confirmed.exit_code == 0

    def test_split_and_add_phase(self, invoke, website):
        assert invoke("project", "split", website).exit_code == 0
        result = invoke("project", "add-phase", website)
        assert result.exit_code == 0
        assert "Phase added: Phase 3" in result.output

        shown = invoke("project", "show", website)
        assert "2025-01-30 -> 2025-01-31" in shown.output

    def test_add_milestone(self, invoke, website):
        result = invoke("project", "add-milestone", website, "-n", "Launch", "-d", "2025-01-20", "-h", "10")
        assert result.exit_code == 0
        over = invoke("project", "add-milestone", website, "-n", "Polish", "-d", "2025-01-25", "-h", "20")
        assert over.exit_code == 1
        assert "Would exceed project budget by 2 hours" in over.output

    def test_continuous_series_lifecycle(self, invoke):
        invoke("project", "create", "-n", "Ops", "-s", "2025-01-01", "--continuous")
        created = invoke("project", "recur", "Ops", "-n", "Standup", "-h", "1", "-t", "weekly", "--weekday", "1")
        assert created.exit_code == 0

        ensured = invoke("project", "ensure", "Ops")
        assert ensured.exit_code == 0
        assert "6 occurrence(s) generated." in ensured.output

        loaded = invoke("project", "set-load", "Ops", "-h", "2", "--mode", "both")
        assert loaded.exit_code == 0
        assert "2 hours per occurrence (both)" in loaded.output

        deleted = invoke("project", "delete-recurring", "Ops", "--yes")
        assert deleted.exit_code == 0
        assert "27 milestones removed" in deleted.output

    def test_malformed_config_uses_defaults(self, invoke, data_dir):
        (data_dir / "config.json").write_text('{"generation_batch_size": "twenty"}')
        invoke("project", "create", "-n", "Ops", "-s", "2025-01-01", "--continuous")
        created = invoke("project", "recur", "Ops", "-n", "Standup", "-h", "1", "-t", "weekly", "--weekday", "1")
        assert created.exit_code == 0

        ensured = invoke("project", "ensure", "Ops")
        assert ensured.exit_code == 0
        assert "6 occurrence(s) generated." in ensured.output

    def test_data_dir_is_a_file(self, runner, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        result = runner.invoke(cli, ["--dir", str(blocker), "project", "show", "Website"])
        assert result.exit_code != 0
