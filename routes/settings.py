from flask import jsonify, abort
from flask_login import login_required, current_user
from . import settings_bp
from models import db, Profile, Subject
from errors import ValidationError
from cache import get_cache
from utils import get_payload, get_int, require_text, optional_text, clean_text

PROFILE_FIELDS = ('first_name', 'last_name', 'gender')

def profile_payload(profile):
    return {
        'first_name': profile.first_name,
        'last_name': profile.last_name,
        'email': profile.email or current_user.email,
        'age': profile.age,
        'gender': profile.gender,
        'created_at': profile.created_at.isoformat() if profile.created_at else None,
    }

@settings_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    profile = Profile.query.filter_by(user_id=current_user.id).first()
    if not profile:
        return jsonify({'first_name': None, 'last_name': None, 'email': current_user.email,
                        'age': None, 'gender': None, 'created_at': None})
    return jsonify(profile_payload(profile))

@settings_bp.route('/profile', methods=['POST', 'PATCH'])
@login_required
def update_profile():
    data = get_payload()
    changes = {field: optional_text(data, field) for field in PROFILE_FIELDS if field in data}
    if 'age' in data:
        age = get_int(data, 'age')
        if age is not None and not 0 < age < 150:
            raise ValidationError("Age must be between 1 and 149")
        changes['age'] = age

    profile = Profile.query.filter_by(user_id=current_user.id).first()
    if not profile:
        profile = Profile(user_id=current_user.id, email=current_user.email)
        db.session.add(profile)
    for field, value in changes.items():
        setattr(profile, field, value)

    db.session.commit()
    get_cache().invalidate('standings')
    return jsonify(profile_payload(profile))

@settings_bp.route('/subjects', methods=['GET'])
@login_required
def list_subjects():
    subjects = Subject.query.filter_by(user_id=current_user.id).order_by(Subject.created_at.asc(), Subject.id.asc()).all()
    return jsonify([s.to_dict() for s in subjects])

@settings_bp.route('/subjects', methods=['POST'])
@login_required
def add_subject():
    data = get_payload()
    name = require_text(data, 'name', 'Subject name')
    subject = Subject(name=name, user_id=current_user.id)
    color = clean_text(data, 'color')
    if color:
        subject.color = color
    db.session.add(subject)
    db.session.commit()
    return jsonify(subject.to_dict()), 201

@settings_bp.route('/subjects/<int:subject_id>', methods=['DELETE'])
@login_required
def delete_subject(subject_id):
    subject = Subject.query.get_or_404(subject_id)
    if subject.user_id != current_user.id:
        abort(403)
    # Sessions go with the subject; tasks just lose the link
    db.session.delete(subject)
    db.session.commit()
    cache = get_cache()
    cache.invalidate('daily_stats', current_user.id)
    cache.invalidate('weekly_stats', current_user.id)
    cache.invalidate('standings')
    return '', 204
