from flask import request, jsonify, current_app
from flask_login import login_required, current_user
from datetime import datetime
from . import leaderboards_bp
from models import LeaderboardMember
from cache import get_cache
from errors import Unauthenticated
from services import leaderboard_service, invitation_service, membership_service
from services.notifications import invite_link
from utils import get_payload

def request_origin():
    return request.headers.get('Origin') or current_app.config['BASE_URL']

def invalidate_membership(leaderboard_id):
    cache = get_cache()
    cache.invalidate('leaderboards')
    cache.invalidate('standings', leaderboard_id)

def invitation_payload(invitation, now):
    data = invitation.to_dict()
    data['expired'] = invitation_service.is_invitation_expired(invitation.status, invitation.expires_at, now)
    data['invite_link'] = invite_link(invitation.token, request_origin())
    return data

@leaderboards_bp.route('/leaderboards', methods=['GET'])
@login_required
def list_leaderboards():
    def compute():
        boards = leaderboard_service.list_leaderboards(current_user)
        result = []
        for board in boards:
            data = board.to_dict()
            data['is_admin'] = board.admin_user_id == current_user.id
            data['member_count'] = LeaderboardMember.query.filter_by(leaderboard_id=board.id).count()
            result.append(data)
        return result
    return jsonify(get_cache().get_or_load(('leaderboards', current_user.id), compute))

@leaderboards_bp.route('/leaderboards', methods=['POST'])
@login_required
def create_leaderboard():
    data = get_payload()
    board = leaderboard_service.create_leaderboard(
        data.get('name'), data.get('ranking_metric', 'study_time'), current_user)
    get_cache().invalidate('leaderboards', current_user.id)
    return jsonify(board.to_dict()), 201

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>', methods=['GET'])
@login_required
def leaderboard_detail(leaderboard_id):
    board = leaderboard_service.get_leaderboard(leaderboard_id, current_user)
    standings = get_cache().get_or_load(
        ('standings', board.id),
        lambda: leaderboard_service.leaderboard_standings(board),
        ttl=60,
    )
    data = board.to_dict()
    data['metric_label'] = leaderboard_service.METRIC_LABELS.get(board.ranking_metric)
    data['is_admin'] = board.admin_user_id == current_user.id
    data['members'] = standings
    return jsonify(data)

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>', methods=['DELETE'])
@login_required
def delete_leaderboard(leaderboard_id):
    membership_service.delete_leaderboard(leaderboard_id, current_user)
    invalidate_membership(leaderboard_id)
    return '', 204

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>/leave', methods=['POST'])
@login_required
def leave_leaderboard(leaderboard_id):
    membership_service.leave_leaderboard(leaderboard_id, current_user)
    invalidate_membership(leaderboard_id)
    return '', 204

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>/members/<int:member_id>', methods=['DELETE'])
@login_required
def remove_member(leaderboard_id, member_id):
    membership_service.remove_member(leaderboard_id, member_id, current_user)
    invalidate_membership(leaderboard_id)
    return '', 204

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>/invitations', methods=['GET'])
@login_required
def list_invitations(leaderboard_id):
    now = datetime.utcnow()
    invitations = invitation_service.list_invitations(leaderboard_id, current_user)
    return jsonify([invitation_payload(i, now) for i in invitations])

@leaderboards_bp.route('/leaderboards/<int:leaderboard_id>/invitations', methods=['POST'])
@login_required
def send_invitation(leaderboard_id):
    invitation = invitation_service.send_invitation(
        leaderboard_id, get_payload().get('email'), current_user, origin=request_origin())
    return jsonify(invitation_payload(invitation, datetime.utcnow())), 201

@leaderboards_bp.route('/join-leaderboard', methods=['GET'])
def join_leaderboard():
    details = invitation_service.resolve_invitation(request.args.get('token'))
    details['signed_in'] = current_user.is_authenticated
    return jsonify(details)

def _token():
    return request.args.get('token') or get_payload().get('token')

@leaderboards_bp.route('/join-leaderboard', methods=['POST'])
def accept_invitation():
    if not current_user.is_authenticated:
        raise Unauthenticated("Please sign in or register to accept this invitation")
    invitation = invitation_service.accept_invitation(_token(), current_user)
    invalidate_membership(invitation.leaderboard_id)
    return jsonify({'leaderboard_id': invitation.leaderboard_id, 'status': invitation.status})

@leaderboards_bp.route('/join-leaderboard/decline', methods=['POST'])
def decline_invitation():
    if not current_user.is_authenticated:
        raise Unauthenticated("Please sign in to decline this invitation")
    invitation = invitation_service.decline_invitation(_token())
    return jsonify({'leaderboard_id': invitation.leaderboard_id, 'status': invitation.status})
