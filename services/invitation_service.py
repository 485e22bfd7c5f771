"""Leaderboard invitations: create, resolve, accept, decline.

An invitation is ``pending`` until it is accepted or declined. Expiry is
never written back; it is derived from ``expires_at`` at read time by
``is_invitation_expired``.
"""
import logging
import uuid
from datetime import datetime, timedelta
from flask import current_app
from itsdangerous import URLSafeSerializer
from models import db, Leaderboard, LeaderboardMember, LeaderboardInvitation
from errors import NotFound, Expired, Forbidden
from utils import parse_email
from services.membership_service import add_member
from services.notifications import notify_invitation, inviter_display_name

logger = logging.getLogger(__name__)

TOKEN_SALT = 'leaderboard-invitation'

def _serializer():
    return URLSafeSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)

def generate_token(leaderboard_id):
    # The nonce makes every token unique even for the same board and email
    return _serializer().dumps({'lb': leaderboard_id, 'n': uuid.uuid4().hex})

def is_invitation_expired(status, expires_at, now=None):
    if now is None:
        now = datetime.utcnow()
    return now > expires_at or status != 'pending'

def send_invitation(leaderboard_id, email, inviter, origin=None, now=None):
    if now is None:
        now = datetime.utcnow()

    leaderboard = db.session.get(Leaderboard, leaderboard_id)
    if not leaderboard:
        raise NotFound("Leaderboard not found")
    if leaderboard.admin_user_id != inviter.id:
        raise Forbidden("Only the admin can invite members")

    email = parse_email(email)
    ttl_days = current_app.config.get('INVITATION_TTL_DAYS', 7)

    invitation = LeaderboardInvitation(
        leaderboard_id=leaderboard.id,
        email=email,
        token=generate_token(leaderboard.id),
        status='pending',
        invited_by=inviter.id,
        created_at=now,
        expires_at=now + timedelta(days=ttl_days),
    )
    db.session.add(invitation)
    db.session.commit()
    logger.info("Invitation %s created for leaderboard %s", invitation.id, leaderboard.id)

    try:
        notify_invitation(invitation.id, origin)
    except Exception:
        logger.warning("Invitation email for %s failed; the invite link still works", invitation.id, exc_info=True)

    return invitation

def _by_token(token, **filters):
    if not token:
        return None
    return LeaderboardInvitation.query.filter_by(token=token, **filters).first()

def resolve_invitation(token, now=None):
    """Details for the join page. Read-only."""
    if now is None:
        now = datetime.utcnow()

    invitation = _by_token(token)
    if not invitation:
        raise NotFound("Invitation not found")

    leaderboard = invitation.leaderboard
    member_count = LeaderboardMember.query.filter_by(leaderboard_id=invitation.leaderboard_id).count()

    return {
        'leaderboard_id': invitation.leaderboard_id,
        'leaderboard_name': leaderboard.name if leaderboard else 'Unknown',
        'ranking_metric': leaderboard.ranking_metric if leaderboard else 'study_time',
        'inviter_name': inviter_display_name(invitation.invited_by, fallback='Someone'),
        'member_count': member_count,
        'email': invitation.email,
        'expires_at': invitation.expires_at.isoformat(),
        'expired': is_invitation_expired(invitation.status, invitation.expires_at, now),
    }

def accept_invitation(token, user, now=None):
    if now is None:
        now = datetime.utcnow()

    invitation = _by_token(token, status='pending')
    if not invitation:
        raise NotFound("Invitation not found or already used")
    if now > invitation.expires_at:
        raise Expired()

    member, created = add_member(invitation.leaderboard_id, user.id)
    invitation.status = 'accepted'
    db.session.commit()

    if created:
        logger.info("User %s joined leaderboard %s via invitation %s", user.id, invitation.leaderboard_id, invitation.id)
    return invitation

def decline_invitation(token):
    invitation = _by_token(token, status='pending')
    if not invitation:
        raise NotFound("Invitation not found or already used")
    invitation.status = 'declined'
    db.session.commit()
    return invitation

def list_invitations(leaderboard_id, user):
    leaderboard = db.session.get(Leaderboard, leaderboard_id)
    if not leaderboard:
        raise NotFound("Leaderboard not found")
    if leaderboard.admin_user_id != user.id:
        raise Forbidden("Only the admin can view invitations")
    return (LeaderboardInvitation.query.filter_by(leaderboard_id=leaderboard.id)
        .order_by(LeaderboardInvitation.created_at.desc(), LeaderboardInvitation.id.desc())
        .all())
