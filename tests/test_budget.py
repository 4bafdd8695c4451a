"""
Tests for budget allocation rules.
"""
from datetime import date

import pytest

from phasekit.rules.budget import (
    AllocationDistribution,
    TimelinePressure,
    allocation_distribution,
    analyze_budget,
    overage,
    remaining,
    suggested_milestone_budget,
    timeline_pressure,
    total_allocation,
    utilization,
    would_exceed_budget,
)


class TestBudgetGate:
    """Tests for would_exceed_budget."""

    def test_overage_is_reported(self, mock_data):
        """Test that 20h existing plus 5h against a 20h budget is 5h over."""
        existing = [mock_data.create_phase(hours=20)]
        check = would_exceed_budget(existing, 5, 20)
        assert check.would_exceed
        assert check.overage == 5
        assert check.current_allocation == 20
        assert check.new_allocation == 25
        assert check.error == "Would exceed project budget by 5 hours"

    def test_exact_fit_is_allowed(self, mock_data):
        existing = [mock_data.create_phase(hours=15)]
        check = would_exceed_budget(existing, 5, 20)
        assert not check.would_exceed
        assert check.overage == 0
        assert check.error is None

    def test_fractional_overage_message(self, mock_data):
        check = would_exceed_budget([mock_data.create_phase(hours=10)], 2.5, 12)
        assert check.error == "Would exceed project budget by 0.5 hours"

    def test_edited_phase_is_excluded(self, mock_data):
        """Test that an edited phase's current hours are not counted twice."""
        edited = mock_data.create_phase(hours=10, phase_id="edited")
        other = mock_data.create_phase(hours=5)
        check = would_exceed_budget([edited, other], 15, 20, exclude_id="edited")
        assert check.current_allocation == 5
        assert not check.would_exceed

    def test_zero_budget_blocks_any_hours(self):
        assert would_exceed_budget([], 1, 0).would_exceed
        assert not would_exceed_budget([], 0, 0).would_exceed

    def test_exceeds_when_new_total_over_budget(self, mock_data):
        """Test the gate against the plain arithmetic over a spread of inputs."""
        for existing_hours in (0, 7, 19.5, 40):
            for candidate in (0, 0.5, 10):
                existing = [mock_data.create_phase(hours=existing_hours)]
                check = would_exceed_budget(existing, candidate, 20)
                assert check.would_exceed == (existing_hours + candidate > 20)


class TestAllocationMath:
    """Tests for totals and budget analysis."""

    def test_total_allocation_is_additive(self, mock_data):
        first = [mock_data.create_phase(hours=3), mock_data.create_phase(hours=4.5)]
        second = [mock_data.create_phase(hours=10)]
        assert total_allocation(first + second) == total_allocation(first) + total_allocation(second)

    def test_total_allocation_empty(self):
        assert total_allocation([]) == 0

    def test_utilization(self):
        assert utilization(30, 40) == 75
        assert utilization(10, 0) == 0

    def test_remaining_and_overage_never_negative(self):
        assert remaining(50, 40) == 0
        assert overage(30, 40) == 0
        assert remaining(30, 40) == 10
        assert overage(50, 40) == 10

    def test_analyze_budget(self, mock_data):
        analysis = analyze_budget([mock_data.create_phase(hours=30)], 40)
        assert analysis.total_allocated == 30
        assert analysis.remaining == 10
        assert analysis.utilization == 75
        assert not analysis.is_over_budget

    def test_analyze_over_budget(self, mock_data):
        analysis = analyze_budget([mock_data.create_phase(hours=45)], 40)
        assert analysis.is_over_budget
        assert analysis.overage == 5


class TestStatistics:
    """Tests for allocation statistics and suggestions."""

    def test_distribution(self, mock_data):
        phases = [mock_data.create_phase(hours=h) for h in (2, 4, 4, 4, 5, 5, 7, 9)]
        stats = allocation_distribution(phases)
        assert stats.min == 2
        assert stats.max == 9
        assert stats.avg == 5
        assert stats.median == 4.5
        assert stats.std_dev == pytest.approx(2.0)

    def test_distribution_of_nothing(self):
        assert allocation_distribution([]) == AllocationDistribution()

    def test_timeline_pressure_needs_two_phases(self, mock_data):
        phases = [mock_data.create_phase(end=date(2025, 1, 10))]
        assert timeline_pressure(phases, date(2025, 1, 1), date(2025, 1, 31)) == TimelinePressure()

    def test_evenly_spaced_milestones(self, mock_data):
        phases = [
            mock_data.create_phase(end=date(2025, 1, 24)),
            mock_data.create_phase(end=date(2025, 1, 8)),
            mock_data.create_phase(end=date(2025, 1, 16)),
        ]
        pressure = timeline_pressure(phases, date(2025, 1, 1), date(2025, 1, 31))
        assert pressure.pressure == pytest.approx(1.0)
        assert pressure.average_days_between == 7.5
        assert pressure.min_days_between == 7
        assert pressure.max_days_between == 8

    def test_suggested_milestone_budget(self):
        suggestion = suggested_milestone_budget(100, 4)
        assert (suggestion.suggested, suggestion.min, suggestion.max) == (25, 20, 30)

    def test_no_remaining_milestones(self):
        suggestion = suggested_milestone_budget(100, 0)
        assert (suggestion.suggested, suggestion.min, suggestion.max) == (0, 0, 0)
