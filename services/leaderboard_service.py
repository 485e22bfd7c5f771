import logging
from datetime import datetime, timedelta
from sqlalchemy import func
from models import db, Leaderboard, LeaderboardMember, Profile, StudySession, Habit, HabitLog, RANKING_METRICS
from errors import NotFound, Forbidden, ValidationError
from utils import round_half_up

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7

METRIC_LABELS = {
    'study_time': 'Study time (minutes)',
    'habit_completion': 'Habit completion (%)',
    'productivity_score': 'Productivity score',
}

def window_start(now):
    return now - timedelta(days=WINDOW_DAYS)

def study_seconds(user_id, now):
    total = (db.session.query(func.sum(StudySession.duration))
        .filter(StudySession.user_id == user_id,
                StudySession.start_time >= window_start(now),
                StudySession.start_time <= now)
        .scalar())
    return total or 0

def habit_completion_ratio(user_id, now):
    """Percentage of possible habit check-ins logged in the window, unrounded.

    The date range is inclusive at both ends, eight calendar dates, while the
    denominator stays ``habits * 7``; a full week plus today exceeds 100.
    """
    habit_count = Habit.query.filter_by(user_id=user_id).count()
    if habit_count == 0:
        return 0.0
    logged = (HabitLog.query.join(Habit)
        .filter(Habit.user_id == user_id,
                HabitLog.date >= window_start(now).date(),
                HabitLog.date <= now.date())
        .count())
    return logged / (habit_count * WINDOW_DAYS) * 100

def compute_score(user_id, metric, now=None):
    if now is None:
        now = datetime.now()

    if metric == 'study_time':
        return round_half_up(study_seconds(user_id, now) / 60)
    if metric == 'habit_completion':
        return round_half_up(habit_completion_ratio(user_id, now))
    if metric == 'productivity_score':
        # Literal sum of minutes and a percentage
        study_minutes = study_seconds(user_id, now) / 60
        return round_half_up(study_minutes + habit_completion_ratio(user_id, now))
    raise ValidationError(f"Unknown ranking metric: {metric}")

def rank_members(entries):
    # Ties: whoever joined first, then lowest membership id
    return sorted(entries, key=lambda e: (-e['score'], e['joined_at'] or '', e['id']))

def leaderboard_standings(leaderboard, now=None):
    if now is None:
        now = datetime.now()

    members = LeaderboardMember.query.filter_by(leaderboard_id=leaderboard.id).all()
    user_ids = [m.user_id for m in members]
    profiles = {p.user_id: p for p in Profile.query.filter(Profile.user_id.in_(user_ids)).all()} if user_ids else {}

    entries = []
    for m in members:
        profile = profiles.get(m.user_id)
        entries.append({
            'id': m.id,
            'user_id': m.user_id,
            'joined_at': m.joined_at.isoformat() if m.joined_at else None,
            'profile': profile.to_dict() if profile else None,
            'score': compute_score(m.user_id, leaderboard.ranking_metric, now),
        })

    ranked = rank_members(entries)
    for position, entry in enumerate(ranked, start=1):
        entry['rank'] = position
    return ranked

def create_leaderboard(name, ranking_metric, admin):
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise ValidationError("Leaderboard name is required")
    if ranking_metric not in RANKING_METRICS:
        raise ValidationError(f"Ranking metric must be one of: {', '.join(RANKING_METRICS)}")

    leaderboard = Leaderboard(name=name, ranking_metric=ranking_metric, admin_user_id=admin.id)
    db.session.add(leaderboard)
    db.session.flush()

    db.session.add(LeaderboardMember(leaderboard_id=leaderboard.id, user_id=admin.id))
    db.session.commit()
    logger.info("Leaderboard %s created by user %s", leaderboard.id, admin.id)
    return leaderboard

def list_leaderboards(user):
    return (Leaderboard.query.join(LeaderboardMember)
        .filter(LeaderboardMember.user_id == user.id)
        .order_by(Leaderboard.created_at.desc(), Leaderboard.id.desc())
        .all())

def is_member(leaderboard_id, user_id):
    return LeaderboardMember.query.filter_by(leaderboard_id=leaderboard_id, user_id=user_id).first() is not None

def get_leaderboard(leaderboard_id, user):
    leaderboard = db.session.get(Leaderboard, leaderboard_id)
    if not leaderboard:
        raise NotFound("Leaderboard not found")
    if not is_member(leaderboard.id, user.id):
        raise Forbidden("You are not a member of this leaderboard")
    return leaderboard
