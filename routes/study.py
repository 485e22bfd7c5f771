from flask import request, jsonify, abort
from flask_login import login_required, current_user
from . import study_bp
from models import db, StudySession, Subject
from errors import ValidationError
from cache import get_cache
from services.stats import sessions_on
from utils import get_payload, get_int, parse_date, parse_datetime

MIN_SESSION_SECONDS = 60

def invalidate_study_views(user_id):
    cache = get_cache()
    cache.invalidate('daily_stats', user_id)
    cache.invalidate('weekly_stats', user_id)
    cache.invalidate('standings')

@study_bp.route('', methods=['GET'])
@login_required
def list_sessions():
    sessions = (StudySession.query.filter_by(user_id=current_user.id)
        .order_by(StudySession.start_time.desc()).all())

    date_str = request.args.get('date')
    if date_str:
        sessions = sessions_on(sessions, parse_date(date_str))

    return jsonify([s.to_dict() for s in sessions])

@study_bp.route('', methods=['POST'])
@login_required
def add_session():
    data = get_payload()

    subject_id = get_int(data, 'subject_id')
    subject = db.session.get(Subject, subject_id) if subject_id else None
    if not subject or subject.user_id != current_user.id:
        raise ValidationError("Select one of your subjects before saving a session")

    start = parse_datetime(data.get('start_time'), 'start time')
    end = parse_datetime(data.get('end_time'), 'end time')
    if end <= start:
        raise ValidationError("A session must end after it starts")

    duration = int((end - start).total_seconds())
    supplied = get_int(data, 'duration')
    if supplied is not None and supplied != duration:
        raise ValidationError("Duration must equal end time minus start time")
    if duration < MIN_SESSION_SECONDS:
        raise ValidationError("Sessions must be at least 1 minute")

    session = StudySession(user_id=current_user.id, subject_id=subject.id,
                           start_time=start, end_time=end, duration=duration)
    db.session.add(session)
    db.session.commit()
    invalidate_study_views(current_user.id)
    return jsonify(session.to_dict()), 201

@study_bp.route('/<int:session_id>', methods=['DELETE'])
@login_required
def delete_session(session_id):
    session = StudySession.query.get_or_404(session_id)
    if session.user_id != current_user.id:
        abort(403)
    db.session.delete(session)
    db.session.commit()
    invalidate_study_views(current_user.id)
    return '', 204
