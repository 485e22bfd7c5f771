"""
Invitation email side channel.

Looks the invitation up by id, builds the join link and sends it through
Flask-Mail. Without MAIL_SERVER configured nothing is sent and the result
says so; that is not an error.
"""
import logging
from flask import current_app
from flask_mail import Message
from markupsafe import escape
from extensions import mail
from models import db, LeaderboardInvitation, Profile
from errors import NotFound

logger = logging.getLogger(__name__)

METRIC_DESCRIPTIONS = {
    'study_time': 'weekly study time',
    'habit_completion': 'weekly habit completion percentage',
    'productivity_score': 'combined productivity score',
}

def invite_link(token, origin):
    return f"{origin.rstrip('/')}/join-leaderboard?token={token}"

def inviter_display_name(user_id, fallback='A StudyFlow user'):
    profile = Profile.query.filter_by(user_id=user_id).first()
    if profile and profile.full_name:
        return profile.full_name
    return fallback

def notify_invitation(invitation_id, origin=None):
    invitation = db.session.get(LeaderboardInvitation, invitation_id)
    if not invitation:
        raise NotFound("Invitation not found")

    if not current_app.config.get('MAIL_SERVER'):
        logger.info("MAIL_SERVER not configured, skipping invitation email %s", invitation.id)
        return {
            'success': True,
            'message': 'Email sending not configured. Use invite link instead.',
            'token': invitation.token,
        }

    leaderboard = invitation.leaderboard
    inviter_name = inviter_display_name(invitation.invited_by)
    url = invite_link(invitation.token, origin or current_app.config['BASE_URL'])
    shared = METRIC_DESCRIPTIONS.get(leaderboard.ranking_metric, 'study data')
    ttl_days = current_app.config.get('INVITATION_TTL_DAYS', 7)

    msg = Message(
        subject=f'{inviter_name} invited you to join "{leaderboard.name}" leaderboard',
        recipients=[invitation.email],
        sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
    )
    msg.body = f"""{inviter_name} invited you to join the "{leaderboard.name}" leaderboard on StudyFlow.

Only your {shared} will be visible to other members. Joining is optional and you can leave anytime.

View the invitation:
{url}

This invitation expires in {ttl_days} days.
"""
    # names and the origin come from users
    safe_inviter, safe_board, safe_url = escape(inviter_name), escape(leaderboard.name), escape(url)
    msg.html = f"""
<html>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #3b82f6;">You're invited!</h2>
    <p><strong>{safe_inviter}</strong> invited you to join the <strong>"{safe_board}"</strong> leaderboard on StudyFlow.</p>
    <p style="color: #374151;">Only your {shared} will be visible to other members.</p>
    <p>
        <a href="{safe_url}" style="background-color: #3b82f6; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px; display: inline-block;">
            View Invitation
        </a>
    </p>
    <p style="color: #9ca3af; font-size: 12px;">This invitation expires in {ttl_days} days.</p>
</body>
</html>
"""
    mail.send(msg)
    logger.info("Invitation email %s sent to %s", invitation.id, invitation.email)
    return {'success': True}
