# calendar_service.py

import calendar
from datetime import date, timedelta

STATUS_COLORS = {'available': 'green', 'unavailable': 'red', 'maybe': 'yellow'}
REHEARSAL_COLOR = 'blue'
EMPTY_COLOR = 'gray'
WEEKDAY_HEADERS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


def parse_month(month_str):
    year, month = map(int, month_str.split('-'))
    if not 1 <= month <= 12: raise ValueError(f"Invalid month '{month_str}'")
    return year, month


def shift_month(month_str, delta):
    year, month = parse_month(month_str)
    target_year = year + (month + delta - 1) // 12
    target_month = (month + delta - 1) % 12 + 1
    return f"{target_year:04d}-{target_month:02d}"


def month_days(year, month):
    start_date, end_date = date(year, month, 1), date(year, month + 1, 1) if month < 12 else date(year + 1, 1, 1)
    days = []
    d = start_date
    while d < end_date:
        days.append(d.strftime('%Y-%m-%d'))
        d += timedelta(days=1)
    return days


def cell_for(day, in_month, availability, rehearsal):
    """Derives the colour and label of one calendar cell; a rehearsal outranks any availability."""
    status = availability['status'] if availability else None
    if rehearsal: color = REHEARSAL_COLOR
    else: color = STATUS_COLORS.get(status, EMPTY_COLOR)
    return {
        "date": day.strftime('%Y-%m-%d'),
        "day": day.day,
        "inMonth": in_month,
        "status": status,
        "color": color,
        "rehearsal": {"time": rehearsal['time'], "location": rehearsal['location']} if rehearsal else None,
    }


def build_month_grid(year, month, store, person_id, rehearsals):
    """Sunday-first weeks of cells for the month, coloured from ``person_id``'s availability."""
    rehearsals_by_day = {}
    for r in sorted(rehearsals, key=lambda r: (r['date'], r['time'])): rehearsals_by_day.setdefault(r['date'], r)
    weeks = []
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        row = []
        for day in week:
            key = day.strftime('%Y-%m-%d')
            availability = store.lookup(person_id, key) if person_id else None
            row.append(cell_for(day, day.month == month, availability, rehearsals_by_day.get(key)))
        weeks.append(row)
    return weeks
