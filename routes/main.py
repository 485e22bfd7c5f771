from flask import request, jsonify
from flask_login import login_required, current_user
from datetime import datetime, timedelta
import calendar
from . import main_bp
from models import StudySession, Subject, Habit, HabitLog, Task
from cache import get_cache
from errors import ValidationError
from services.stats import daily_stats, weekly_stats, minutes_by_day, completed_on
from utils import format_minutes, parse_date

def _sessions_between(start, end):
    return (StudySession.query.filter_by(user_id=current_user.id)
        .filter(StudySession.start_time >= start, StudySession.start_time <= end)
        .order_by(StudySession.start_time.asc())
        .all())

def _day_range(first_day, last_day):
    return (datetime.combine(first_day, datetime.min.time()),
            datetime.combine(last_day, datetime.max.time()))

def _subject_names():
    return {s.id: s.name for s in Subject.query.filter_by(user_id=current_user.id).all()}

def load_daily_stats(day):
    def compute():
        stats = daily_stats(_sessions_between(*_day_range(day, day)), day)
        names = _subject_names()
        for item in stats['subject_breakdown']:
            item['subject_name'] = names.get(item['subject_id'], 'Unknown')
        stats['total_formatted'] = format_minutes(stats['total_minutes'])
        return stats
    return get_cache().get_or_load(('daily_stats', current_user.id, day.isoformat()), compute)

def load_weekly_stats(today):
    def compute():
        sessions = _sessions_between(*_day_range(today - timedelta(days=6), today))
        stats = weekly_stats(sessions, today)
        stats['total_formatted'] = format_minutes(stats['total_minutes'])
        return stats
    return get_cache().get_or_load(('weekly_stats', current_user.id, today.isoformat()), compute)

@main_bp.route('/')
@login_required
def dashboard():
    today = datetime.now().date()

    habits = Habit.query.filter_by(user_id=current_user.id).all()
    today_logs = (HabitLog.query.join(Habit)
        .filter(Habit.user_id == current_user.id, HabitLog.date == today)
        .all())

    upcoming = (Task.query.filter_by(user_id=current_user.id, completed=False)
        .filter(Task.due_date <= today + timedelta(days=7))
        .order_by(Task.due_date.asc())
        .limit(5).all())

    return jsonify({
        'today': load_daily_stats(today),
        'week': load_weekly_stats(today),
        'habits_total': len(habits),
        'habits_done_today': completed_on(today_logs, today),
        'upcoming_tasks': [t.to_dict() for t in upcoming],
    })

@main_bp.route('/reports/daily')
@login_required
def daily_report():
    date_str = request.args.get('date')
    day = parse_date(date_str) if date_str else datetime.now().date()
    return jsonify(load_daily_stats(day))

@main_bp.route('/reports/weekly')
@login_required
def weekly_report():
    return jsonify(load_weekly_stats(datetime.now().date()))

@main_bp.route('/calendar')
@login_required
def calendar_view():
    month_str = request.args.get('month')
    if month_str:
        try:
            first = datetime.strptime(month_str, '%Y-%m').date()
        except ValueError:
            raise ValidationError("Invalid month, expected YYYY-MM")
    else:
        first = datetime.now().date().replace(day=1)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])

    sessions = _sessions_between(*_day_range(first, last))
    tasks = (Task.query.filter_by(user_id=current_user.id)
        .filter(Task.due_date >= first, Task.due_date <= last)
        .order_by(Task.due_date.asc()).all())

    tasks_by_day = {}
    for t in tasks:
        tasks_by_day.setdefault(t.due_date.isoformat(), []).append(t.to_dict())

    return jsonify({
        'month': first.strftime('%Y-%m'),
        'study_minutes': minutes_by_day(sessions),
        'tasks': tasks_by_day,
    })
