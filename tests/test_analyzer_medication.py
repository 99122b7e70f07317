"""Tests for the medication analyzer."""

import pytest

from health_insights.analyzers import analyze_medication
from health_insights.models import MetricType

from helpers import find, make_context, medication, metric, symptom


class TestMedicationAnalyzer:
    """Tests for analyze_medication."""

    def test_needs_five_logs(self):
        ctx = make_context(medications=[medication(False, d) for d in range(1, 5)])
        assert analyze_medication(ctx) == []

    def test_low_adherence(self):
        logs = [medication(d <= 3, d) for d in range(1, 8)]
        ctx = make_context(medications=logs)
        insight = find(analyze_medication(ctx), "Medication consistency")

        assert insight.confidence == 0.82
        assert insight.description == (
            "You've taken medication 43% of logged days. Try setting a daily reminder."
        )

    def test_high_adherence(self):
        logs = [medication(True, d) for d in range(1, 11)]
        ctx = make_context(medications=logs)
        insight = find(analyze_medication(ctx), "Great medication habits!")
        assert insight.description == "100% adherence rate. Keep it up!"

    def test_adherence_needs_seven_logs(self):
        logs = [medication(True, d) for d in range(1, 6)]
        assert analyze_medication(make_context(medications=logs)) == []

    def test_missed_medication_symptoms(self):
        """A symptom reported more often on skipped days."""
        logs = [medication(d <= 5, d) for d in range(1, 9)]
        symptoms = [symptom("headache", d) for d in (6, 7, 1)]
        symptoms += [symptom("nausea", d) for d in (2, 3)]
        ctx = make_context(medications=logs, manual_logs=symptoms)

        insight = find(analyze_medication(ctx), "Headache linked to missed meds")
        assert insight.description == (
            "You report headache 233% more on days you skip medication."
        )
        assert insight.confidence == pytest.approx(0.72)
        assert insight.related_signals == frozenset({"symptom", "medication"})

    def test_missed_medication_sleep(self):
        logs = [medication(d <= 4, d) for d in range(1, 7)]
        ctx = make_context(
            medications=logs,
            metrics=[metric(MetricType.SLEEP, 8.0 if d <= 4 else 6.5, d) for d in range(1, 7)],
        )
        insight = find(analyze_medication(ctx), "Medication affects sleep")
        assert insight.description == "You sleep 1.5h less on days you miss medication."
