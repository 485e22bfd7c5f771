from flask import request, jsonify, abort
from flask_login import login_required, current_user
from datetime import datetime, timedelta
from . import habits_bp
from models import db, Habit, HabitLog
from cache import get_cache
from services.stats import habit_streak
from utils import get_payload, parse_date, require_text

@habits_bp.route('', methods=['GET'])
@login_required
def list_habits():
    user_habits = Habit.query.filter_by(user_id=current_user.id).order_by(Habit.created_at.asc(), Habit.id.asc()).all()

    today = datetime.now().date()
    dates = [today - timedelta(days=i) for i in range(6, -1, -1)]

    habit_ids = [h.id for h in user_habits]
    logs = HabitLog.query.filter(HabitLog.habit_id.in_(habit_ids)).all() if habit_ids else []
    logged = {(log.habit_id, log.date) for log in logs}

    habits_data = []
    for h in user_habits:
        habits_data.append({
            'id': h.id,
            'name': h.name,
            'created_at': h.created_at.isoformat() if h.created_at else None,
            'streak': habit_streak(h.id, logs, today),
            'is_done_today': (h.id, today) in logged,
            'days': [{
                'date': d.isoformat(),
                'is_done': (h.id, d) in logged,
                'is_today': d == today,
                'day_name': d.strftime('%a'),
            } for d in dates],
        })

    return jsonify(habits_data)

@habits_bp.route('', methods=['POST'])
@login_required
def add_habit():
    name = require_text(get_payload(), 'name', 'Habit name')
    habit = Habit(name=name, user_id=current_user.id)
    db.session.add(habit)
    db.session.commit()
    get_cache().invalidate('standings')
    return jsonify({'id': habit.id, 'name': habit.name}), 201

@habits_bp.route('/<int:habit_id>/toggle', methods=['POST'])
@login_required
def toggle_habit(habit_id):
    habit = Habit.query.get_or_404(habit_id)
    if habit.user_id != current_user.id:
        abort(403)

    date_str = request.args.get('date') or get_payload().get('date')
    target_date = parse_date(date_str) if date_str else datetime.now().date()

    log = HabitLog.query.filter_by(habit_id=habit.id, date=target_date).first()
    if log:
        db.session.delete(log)
        is_done = False
    else:
        db.session.add(HabitLog(habit_id=habit.id, date=target_date))
        is_done = True

    db.session.commit()
    get_cache().invalidate('standings')

    logs = HabitLog.query.filter_by(habit_id=habit.id).all()
    return jsonify({
        'habit_id': habit.id,
        'date': target_date.isoformat(),
        'is_done': is_done,
        'streak': habit_streak(habit.id, logs),
    })

@habits_bp.route('/<int:habit_id>', methods=['DELETE'])
@login_required
def delete_habit(habit_id):
    habit = Habit.query.get_or_404(habit_id)
    if habit.user_id != current_user.id:
        abort(403)
    db.session.delete(habit)
    db.session.commit()
    get_cache().invalidate('standings')
    return '', 204
