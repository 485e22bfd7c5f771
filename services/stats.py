"""Study-time summaries and habit streaks.

Everything here is a pure function over already-fetched rows so the same
code serves the dashboard, the reports and the tests. Durations are seconds
on the way in and minutes on the way out; the conversion always rounds half
up so short sessions never show as zero.
"""
from datetime import datetime, timedelta
from utils import round_half_up, seconds_to_minutes


def _day_bounds(day):
    start = datetime.combine(day, datetime.min.time())
    end = datetime.combine(day, datetime.max.time())
    return start, end


def sessions_on(sessions, day):
    start, end = _day_bounds(day)
    return [s for s in sessions if start <= s.start_time <= end]


def daily_stats(sessions, day=None):
    if day is None:
        day = datetime.now().date()
    elif isinstance(day, datetime):
        day = day.date()

    day_sessions = sessions_on(sessions, day)

    # dicts keep insertion order, so ties go to the first subject seen
    seconds_by_subject = {}
    for s in day_sessions:
        seconds_by_subject[s.subject_id] = seconds_by_subject.get(s.subject_id, 0) + (s.duration or 0)

    breakdown = [
        {'subject_id': subject_id, 'minutes': seconds_to_minutes(seconds)}
        for subject_id, seconds in seconds_by_subject.items()
    ]

    most_studied = None
    max_minutes = 0
    for item in breakdown:
        if item['minutes'] > max_minutes:
            max_minutes = item['minutes']
            most_studied = item['subject_id']

    return {
        'date': day.isoformat(),
        'total_minutes': sum(item['minutes'] for item in breakdown),
        'session_count': len(day_sessions),
        'subject_breakdown': breakdown,
        'most_studied_subject': most_studied,
    }


def weekly_stats(sessions, today=None):
    if today is None:
        today = datetime.now().date()
    elif isinstance(today, datetime):
        today = today.date()

    daily_totals = []
    for i in range(6, -1, -1):
        day = today - timedelta(days=i)
        daily_totals.append({
            'date': day.isoformat(),
            'minutes': daily_stats(sessions, day)['total_minutes'],
        })

    total_minutes = sum(d['minutes'] for d in daily_totals)

    most_productive = None
    max_minutes = 0
    for d in daily_totals:
        if d['minutes'] > max_minutes:
            max_minutes = d['minutes']
            most_productive = d['date']

    return {
        'daily_totals': daily_totals,
        'total_minutes': total_minutes,
        'average_minutes': round_half_up(total_minutes / 7),
        'most_productive_day': most_productive,
    }


def habit_streak(habit_id, logs, today=None):
    """Consecutive logged days ending today, or yesterday if today is still open."""
    if today is None:
        today = datetime.now().date()
    elif isinstance(today, datetime):
        today = today.date()

    logged = {log.date for log in logs if log.habit_id == habit_id}
    if not logged:
        return 0

    yesterday = today - timedelta(days=1)
    if today not in logged and yesterday not in logged:
        return 0

    check = today if today in logged else yesterday
    streak = 0
    while check in logged:
        streak += 1
        check -= timedelta(days=1)
    return streak


def minutes_by_day(sessions):
    seconds = {}
    for s in sessions:
        key = s.start_time.date().isoformat()
        seconds[key] = seconds.get(key, 0) + (s.duration or 0)
    return {day: seconds_to_minutes(total) for day, total in seconds.items()}


def completed_on(logs, day):
    if isinstance(day, datetime):
        day = day.date()
    return sum(1 for log in logs if log.date == day)
