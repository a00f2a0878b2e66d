import calendar
from collections import defaultdict
from datetime import date, timedelta

from website.models import Appointment


def _add_months(d: date, n: int) -> date:
    """Return a date n months from d (always day=1)."""
    y = d.year + (d.month - 1 + n) // 12
    m = (d.month - 1 + n) % 12 + 1
    return date(y, m, 1)


def build_appointment_calendar(base: date, selected: date = None):
    """
    Month grid for the dashboard calendar.

    Weeks start on Sunday; days outside the month are None. Each day cell
    carries the active (pending / confirmed / rescheduled) appointments
    booked on it, plus prev/next month navigation values.
    """
    month_start = base.replace(day=1)
    month_end = _add_months(month_start, 1) - timedelta(days=1)

    qs = (
        Appointment.objects
        .filter(
            appointment_date__range=(month_start, month_end),
            status__in=Appointment.ACTIVE_STATUSES,
        )
        .order_by("appointment_date", "appointment_time")
    )
    by_day = defaultdict(list)
    for appt in qs:
        by_day[appt.appointment_date].append(appt)

    weeks = []
    for week in calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(month_start.year, month_start.month):
        row = []
        for d in week:
            if d.month != month_start.month:
                row.append(None)
                continue
            row.append({
                "date": d,
                "appointments": by_day.get(d, []),
                "is_selected": selected == d,
            })
        weeks.append(row)

    return {
        "month_label": month_start.strftime("%B %Y"),
        "weekdays": ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"],
        "weeks": weeks,
        "prev_month": _add_months(month_start, -1).isoformat(),
        "next_month": _add_months(month_start, 1).isoformat(),
        "selected_date": selected,
        "selected_appointments": by_day.get(selected, []) if selected else [],
    }
