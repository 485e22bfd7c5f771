import logging
from models import db, Leaderboard, LeaderboardMember
from errors import NotFound, Forbidden, AdminCannotLeave

logger = logging.getLogger(__name__)

def _get_board(leaderboard_id):
    leaderboard = db.session.get(Leaderboard, leaderboard_id)
    if not leaderboard:
        raise NotFound("Leaderboard not found")
    return leaderboard

def add_member(leaderboard_id, user_id):
    """Insert a membership row unless the user already has one."""
    existing = LeaderboardMember.query.filter_by(leaderboard_id=leaderboard_id, user_id=user_id).first()
    if existing:
        return existing, False
    member = LeaderboardMember(leaderboard_id=leaderboard_id, user_id=user_id)
    db.session.add(member)
    return member, True

def remove_member(leaderboard_id, member_id, actor):
    leaderboard = _get_board(leaderboard_id)
    if leaderboard.admin_user_id != actor.id:
        raise Forbidden("Only the admin can remove members")

    member = LeaderboardMember.query.filter_by(id=member_id, leaderboard_id=leaderboard.id).first()
    if not member:
        raise NotFound("Member not found")
    if member.user_id == leaderboard.admin_user_id:
        raise AdminCannotLeave("The admin cannot be removed from the leaderboard")

    db.session.delete(member)
    db.session.commit()
    logger.info("User %s removed member %s from leaderboard %s", actor.id, member_id, leaderboard.id)

def leave_leaderboard(leaderboard_id, user):
    leaderboard = _get_board(leaderboard_id)
    if leaderboard.admin_user_id == user.id:
        raise AdminCannotLeave()

    member = LeaderboardMember.query.filter_by(leaderboard_id=leaderboard.id, user_id=user.id).first()
    if not member:
        raise NotFound("You are not a member of this leaderboard")

    db.session.delete(member)
    db.session.commit()
    logger.info("User %s left leaderboard %s", user.id, leaderboard.id)

def delete_leaderboard(leaderboard_id, actor):
    leaderboard = _get_board(leaderboard_id)
    if leaderboard.admin_user_id != actor.id:
        raise Forbidden("Only the admin can delete this leaderboard")

    # members and invitations go with it (relationship cascade)
    db.session.delete(leaderboard)
    db.session.commit()
    logger.info("Leaderboard %s deleted by user %s", leaderboard_id, actor.id)
