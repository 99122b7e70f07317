"""Tests for menstrual cycle phase prediction."""

from datetime import date, timedelta

import pytest

from health_insights.cycle import (
    average_cycle_length,
    period_starts,
    phase_for_cycle_day,
    predict_cycle_phases,
)
from health_insights.models import CycleEntry, CyclePhase


def _entry(day: date, phase: CyclePhase) -> CycleEntry:
    return CycleEntry(date=day, phase=phase)


class TestPhaseForCycleDay:
    """Tests for the day-in-cycle phase boundaries."""

    @pytest.mark.parametrize(
        ("day", "phase"),
        [
            (0, CyclePhase.MENSTRUATION),
            (4, CyclePhase.MENSTRUATION),
            (5, CyclePhase.FOLLICULAR),
            (13, CyclePhase.FOLLICULAR),
            (14, CyclePhase.OVULATION),
            (15, CyclePhase.OVULATION),
            (16, CyclePhase.LUTEAL),
            (27, CyclePhase.LUTEAL),
        ],
    )
    def test_boundaries(self, day, phase):
        assert phase_for_cycle_day(day) == phase


class TestCycleLength:
    """Tests for period starts and cycle length."""

    def test_period_starts_collapse_consecutive_days(self):
        """Each run of logged period days counts once, by its first day."""
        days = [date(2025, 5, 1) + timedelta(days=i) for i in range(5)]
        days += [date(2025, 5, 29) + timedelta(days=i) for i in range(4)]
        assert period_starts(days) == [date(2025, 5, 1), date(2025, 5, 29)]

    def test_average_gap(self):
        """Mean gap between starts, rounded."""
        starts = [date(2025, 1, 1), date(2025, 1, 31), date(2025, 3, 2)]
        assert average_cycle_length(starts) == 30

    def test_default_without_history(self):
        """One or no start gives the 28-day default."""
        assert average_cycle_length([date(2025, 1, 1)]) == 28
        assert average_cycle_length([]) == 28


class TestPredictCyclePhases:
    """Tests for filling predicted phases."""

    def test_fills_from_last_period_start(self):
        """Days after the last period start get predicted phases."""
        today = date(2025, 6, 15)
        start = date(2025, 6, 1)
        entries = predict_cycle_phases([_entry(start, CyclePhase.MENSTRUATION)], today)

        assert len(entries) == 35
        assert entries[0].date == start + timedelta(days=34)
        assert entries[-1].date == start
        assert entries[-1].predicted is False

        by_date = {e.date: e for e in entries}
        assert by_date[date(2025, 6, 15)].phase == CyclePhase.OVULATION
        assert by_date[date(2025, 6, 15)].predicted is True
        assert by_date[date(2025, 6, 5)].phase == CyclePhase.MENSTRUATION
        assert by_date[date(2025, 6, 6)].phase == CyclePhase.FOLLICULAR
        # Day 34 wraps into the next cycle.
        assert by_date[date(2025, 7, 5)].phase == CyclePhase.FOLLICULAR

    def test_logged_entries_are_kept(self):
        """A logged day is never replaced by a prediction."""
        today = date(2025, 6, 15)
        logged = [
            _entry(date(2025, 6, 1), CyclePhase.MENSTRUATION),
            _entry(date(2025, 6, 3), CyclePhase.FOLLICULAR),
        ]
        entries = predict_cycle_phases(logged, today)
        june_3 = [e for e in entries if e.date == date(2025, 6, 3)]

        assert len(june_3) == 1
        assert june_3[0].phase == CyclePhase.FOLLICULAR
        assert june_3[0].predicted is False

    def test_multi_day_period_uses_start(self):
        """A five-day logged period anchors the cycle at its first day."""
        today = date(2025, 6, 15)
        logged = [
            _entry(date(2025, 6, 1) + timedelta(days=i), CyclePhase.MENSTRUATION)
            for i in range(5)
        ]
        by_date = {e.date: e.phase for e in predict_cycle_phases(logged, today)}

        assert by_date[date(2025, 6, 6)] == CyclePhase.FOLLICULAR
        assert by_date[date(2025, 6, 17)] == CyclePhase.LUTEAL

    def test_no_menstruation_returns_logged_only(self):
        """Without a period date nothing is predicted."""
        logged = [
            _entry(date(2025, 6, 1), CyclePhase.LUTEAL),
            _entry(date(2025, 6, 2), CyclePhase.LUTEAL),
        ]
        entries = predict_cycle_phases(logged, date(2025, 6, 15))
        assert [e.date for e in entries] == [date(2025, 6, 2), date(2025, 6, 1)]

    def test_old_history_not_predicted(self):
        """Predictions more than 90 days in the past are dropped."""
        logged = [_entry(date(2025, 1, 1), CyclePhase.MENSTRUATION)]
        entries = predict_cycle_phases(logged, date(2025, 12, 1))
        assert entries == logged
