import math
import re
from datetime import datetime, date
from flask import request
from errors import ValidationError

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

def format_minutes(minutes):
    if not minutes:
        return "0m"
    hours = minutes // 60
    mins = minutes % 60
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"

def round_half_up(value):
    # Python's round() is banker's rounding; 0.5 must become 1
    return int(math.floor(value + 0.5))

def seconds_to_minutes(seconds):
    return round_half_up(seconds / 60)

def get_payload():
    """JSON body if there is one, form data otherwise."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form

def _label(field, label=None):
    return label or field.replace('_', ' ').capitalize()

def clean_text(data, field, label=None):
    """Stripped string value of ``field``, '' when missing."""
    value = data.get(field)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{_label(field, label)} must be text")
    return value.strip()

def optional_text(data, field, label=None):
    return clean_text(data, field, label) or None

def require_text(data, field, label=None):
    value = clean_text(data, field, label)
    if not value:
        raise ValidationError(f"{_label(field, label)} is required")
    return value

def get_int(data, field):
    value = data.get(field)
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{_label(field)} must be a number")

def parse_date(value, field='date'):
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}, expected YYYY-MM-DD")

def parse_datetime(value, field='time'):
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}, expected an ISO 8601 timestamp")
    # Stored as naive local time, the same clock datetime.now() reads
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed

def parse_email(value):
    email = value.strip().lower() if isinstance(value, str) else ''
    if not email or not EMAIL_RE.match(email):
        raise ValidationError("A valid email address is required")
    return email
