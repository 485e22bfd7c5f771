from flask import request, jsonify, abort
from flask_login import login_required, current_user
from . import tasks_bp
from models import db, Task, Subject
from errors import ValidationError
from utils import get_payload, get_int, parse_date, require_text

def owned_subject_id(data):
    subject_id = get_int(data, 'subject_id')
    if subject_id is None:
        return None
    subject = db.session.get(Subject, subject_id)
    if not subject or subject.user_id != current_user.id:
        raise ValidationError("Unknown subject")
    return subject.id

@tasks_bp.route('', methods=['GET'])
@login_required
def list_tasks():
    query = Task.query.filter_by(user_id=current_user.id)

    status = request.args.get('status')
    if status == 'pending':
        query = query.filter(Task.completed.is_(False))
    elif status == 'completed':
        query = query.filter(Task.completed.is_(True))

    tasks = query.order_by(Task.due_date.asc(), Task.id.asc()).all()
    return jsonify([t.to_dict() for t in tasks])

@tasks_bp.route('', methods=['POST'])
@login_required
def add_task():
    data = get_payload()
    title = require_text(data, 'title')
    due_date = parse_date(data.get('due_date'), 'due date')

    task = Task(title=title, subject_id=owned_subject_id(data), due_date=due_date,
                completed=False, user_id=current_user.id)
    db.session.add(task)
    db.session.commit()
    return jsonify(task.to_dict()), 201

@tasks_bp.route('/<int:task_id>', methods=['PATCH', 'POST'])
@login_required
def update_task(task_id):
    task = Task.query.get_or_404(task_id)
    if task.user_id != current_user.id:
        abort(403)

    data = get_payload()
    if 'completed' in data:
        completed = data.get('completed')
        if isinstance(completed, str):
            completed = completed.lower() in ('1', 'true', 'on', 'yes')
        task.completed = bool(completed)
    if 'title' in data:
        task.title = require_text(data, 'title')
    if 'due_date' in data:
        task.due_date = parse_date(data.get('due_date'), 'due date')
    if 'subject_id' in data:
        task.subject_id = owned_subject_id(data)

    db.session.commit()
    return jsonify(task.to_dict())

@tasks_bp.route('/<int:task_id>', methods=['DELETE'])
@login_required
def delete_task(task_id):
    task = Task.query.get_or_404(task_id)
    if task.user_id != current_user.id:
        abort(403)
    db.session.delete(task)
    db.session.commit()
    return '', 204
