"""
Aggregates behind the dashboard and analytics pages.
"""

import datetime as dt
from collections import Counter, defaultdict
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import MONTHLY, rrule

from absence_tracker.schemas.absence import Absence, AbsenceFilter
from absence_tracker.schemas.directory import Department, Teacher

TOP_TEACHERS = 10


def _ranked(counter: dict, key: str = "count") -> list[dict]:
    return [
        {"name": name, key: value}
        for name, value in sorted(counter.items(), key=lambda item: item[1], reverse=True)
    ]


def monthly_counts(absences: list[Absence], start: dt.date, end: dt.date) -> list[dict]:
    first = start.replace(day=1)
    counts = Counter((a.date.year, a.date.month) for a in absences)
    return [
        {"name": month.strftime("%b %Y"), "count": counts.get((month.year, month.month), 0)}
        for month in rrule(MONTHLY, dtstart=first, until=end)
    ]


def summarize(
    absences: list[Absence],
    filters: AbsenceFilter,
    teachers: Iterable[Teacher] = (),
    departments: Iterable[Department] = (),
) -> dict:
    filtered = filters.apply(absences)
    teacher_names = {t.id: t.name for t in teachers}
    department_names = {d.id: d.name for d in departments}

    by_department = Counter(department_names.get(a.department_id, "Unknown") for a in filtered)
    by_unit = Counter(a.unit or "Not Specified" for a in filtered)
    by_reason = Counter(a.reason for a in filtered)
    by_contract = Counter(a.contract_type or "Not Specified" for a in filtered)
    by_teacher = Counter(a.teacher_id for a in filtered)

    classes_by_unit: dict[str, float] = defaultdict(float)
    classes_by_teacher: dict[str, float] = defaultdict(float)
    for a in filtered:
        classes_by_unit[a.unit or "Not Specified"] += a.classes or 0
        classes_by_teacher[teacher_names.get(a.teacher_id, "Unknown")] += a.classes or 0

    monthly = []
    if filtered or (filters.start_date and filters.end_date):
        start = filters.start_date or min(a.date for a in filtered)
        end = filters.end_date or max(a.date for a in filtered)
        monthly = monthly_counts(filtered, start, end)

    total = len(filtered)
    return {
        "total": total,
        "total_classes": sum(a.classes or 0 for a in filtered),
        "monthly": monthly,
        "by_department": _ranked(by_department, "value"),
        "by_unit": _ranked(by_unit),
        "by_reason": _ranked(by_reason),
        "classes_by_unit": _ranked(classes_by_unit, "total_classes"),
        "classes_by_teacher": _ranked(classes_by_teacher, "total_classes"),
        "top_teachers": [
            {"id": teacher_id, "name": teacher_names.get(teacher_id, "Unknown"), "count": count}
            for teacher_id, count in by_teacher.most_common(TOP_TEACHERS)
        ],
        "contract_types": [
            {"name": name, "value": count, "percentage": round(count / total * 100, 2)}
            for name, count in by_contract.items()
        ],
    }


def dashboard(absences: list[Absence], today: Optional[dt.date] = None) -> dict:
    today = today or dt.date.today()
    month_start = today.replace(day=1)
    month_end = month_start + relativedelta(months=1, days=-1)
    current_month = [a for a in absences if month_start <= a.date <= month_end]

    return {
        "current_month_total": len(current_month),
        "current_month_by_department": _ranked(Counter(a.department_name or "Unknown" for a in current_month)),
        "units": sorted({a.unit for a in absences if a.unit}),
        "total": len(absences),
    }
