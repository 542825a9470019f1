import datetime as dt

import pytest

from absence_tracker.schemas.absence import AbsenceFilter
from absence_tracker.services.analytics import dashboard, monthly_counts, summarize


def test_summary_over_everything(store):
    summary = summarize(store.absences, AbsenceFilter(), store.teachers, store.departments)

    assert summary["total"] == 3
    assert summary["total_classes"] == 9
    assert summary["by_department"][0] == {"name": "Matemática", "value": 2}
    assert summary["top_teachers"][0] == {"id": "t1", "name": "Ana Souza", "count": 2}
    assert {"name": "Centro", "total_classes": 6} in summary["classes_by_unit"]
    assert [m["name"] for m in summary["monthly"]] == ["Feb 2024", "Mar 2024"]
    assert sum(c["percentage"] for c in summary["contract_types"]) == pytest.approx(100)


def test_summary_respects_filters(store):
    filters = AbsenceFilter(unit="Centro", start_date=dt.date(2024, 3, 5))
    summary = summarize(store.absences, filters, store.teachers, store.departments)

    assert summary["total"] == 1
    assert summary["by_reason"] == [{"name": "Conference", "count": 1}]


def test_empty_summary(store):
    summary = summarize([], AbsenceFilter(), store.teachers, store.departments)
    assert summary["total"] == 0
    assert summary["monthly"] == []
    assert summary["contract_types"] == []


def test_monthly_counts_include_empty_months(store):
    months = monthly_counts(store.absences, dt.date(2024, 1, 15), dt.date(2024, 3, 31))
    assert months == [
        {"name": "Jan 2024", "count": 0},
        {"name": "Feb 2024", "count": 1},
        {"name": "Mar 2024", "count": 2},
    ]


def test_dashboard_current_month(store):
    data = dashboard(store.absences, today=dt.date(2024, 3, 20))

    assert data["current_month_total"] == 2
    assert data["current_month_by_department"] == [{"name": "Matemática", "count": 2}]
    assert data["units"] == ["Centro", "Norte"]
    assert data["total"] == 3
