from datetime import datetime, timedelta
import pytest
from extensions import mail
from models import db, LeaderboardMember, LeaderboardInvitation
from errors import NotFound, Expired
from services.leaderboard_service import create_leaderboard
from services.invitation_service import (send_invitation, resolve_invitation, accept_invitation,
                                         is_invitation_expired)
from services.notifications import notify_invitation

@pytest.fixture
def board(auth_client):
    _, admin = auth_client
    return create_leaderboard('Exam prep', 'study_time', admin)

def test_invitation_expiry_is_derived():
    now = datetime(2026, 3, 10, 12, 0)
    assert is_invitation_expired('pending', now + timedelta(seconds=1), now) is False
    assert is_invitation_expired('pending', now - timedelta(seconds=1), now) is True
    assert is_invitation_expired('accepted', now + timedelta(days=3), now) is True

def test_admin_sends_invitation(auth_client, board):
    client, admin = auth_client
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 'Friend@Example.com'})
    assert res.status_code == 201
    assert res.json['email'] == 'friend@example.com'
    assert res.json['status'] == 'pending'
    assert res.json['expired'] is False
    assert res.json['invite_link'] == f"http://studyflow.test/join-leaderboard?token={res.json['token']}"

    invitation = LeaderboardInvitation.query.one()
    assert invitation.expires_at - invitation.created_at == timedelta(days=7)
    assert invitation.invited_by == admin.id

def test_tokens_are_unique(auth_client, board):
    _, admin = auth_client
    a = send_invitation(board.id, 'same@example.com', admin)
    b = send_invitation(board.id, 'same@example.com', admin)
    assert a.token != b.token

def test_invite_link_uses_request_origin(auth_client, board):
    client, _ = auth_client
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 'f@example.com'},
                      headers={'Origin': 'https://app.example.org'})
    assert res.json['invite_link'].startswith('https://app.example.org/join-leaderboard?token=')

def test_only_admin_can_invite(auth_client, board, create_user, login_as):
    client, _ = auth_client
    friend = create_user('friend@example.com')
    db.session.add(LeaderboardMember(leaderboard_id=board.id, user_id=friend.id))
    db.session.commit()

    login_as('friend@example.com')
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 'x@example.com'})
    assert res.status_code == 403
    assert client.get(f'/leaderboards/{board.id}/invitations').status_code == 403
    assert LeaderboardInvitation.query.count() == 0

def test_invalid_email(auth_client, board):
    client, _ = auth_client
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 'not-an-email'})
    assert res.status_code == 400

def test_notification_skipped_without_mail_server(auth_client, board):
    _, admin = auth_client
    invitation = send_invitation(board.id, 'f@example.com', admin)
    result = notify_invitation(invitation.id)
    assert result == {
        'success': True,
        'message': 'Email sending not configured. Use invite link instead.',
        'token': invitation.token,
    }

def test_notification_unknown_invitation(auth_client):
    with pytest.raises(NotFound):
        notify_invitation(12345)

def test_notification_sends_mail(app, auth_client, board):
    _, admin = auth_client
    app.config['MAIL_SERVER'] = 'smtp.studyflow.test'
    with mail.record_messages() as outbox:
        invitation = send_invitation(board.id, 'friend@example.com', admin, origin='https://studyflow.test')

    assert len(outbox) == 1
    msg = outbox[0]
    assert msg.recipients == ['friend@example.com']
    assert msg.subject == 'Test invited you to join "Exam prep" leaderboard'
    assert f'https://studyflow.test/join-leaderboard?token={invitation.token}' in msg.body
    assert 'weekly study time' in msg.body

def test_notification_failure_keeps_invitation(auth_client, board, monkeypatch):
    client, _ = auth_client

    def broken(*args, **kwargs):
        raise RuntimeError('smtp down')

    monkeypatch.setattr('services.invitation_service.notify_invitation', broken)
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 'f@example.com'})
    assert res.status_code == 201
    assert LeaderboardInvitation.query.count() == 1

def test_list_invitations_newest_first(auth_client, board):
    client, admin = auth_client
    now = datetime.utcnow()
    send_invitation(board.id, 'old@example.com', admin, now=now - timedelta(days=10))
    send_invitation(board.id, 'new@example.com', admin, now=now)

    res = client.get(f'/leaderboards/{board.id}/invitations')
    assert [i['email'] for i in res.json] == ['new@example.com', 'old@example.com']
    assert [i['expired'] for i in res.json] == [False, True]

def test_resolve_without_login(auth_client, board, create_user):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'f@example.com', admin)
    client.post('/logout')

    res = client.get(f'/join-leaderboard?token={invitation.token}')
    assert res.status_code == 200
    assert res.json['leaderboard_name'] == 'Exam prep'
    assert res.json['ranking_metric'] == 'study_time'
    assert res.json['inviter_name'] == 'Test'
    assert res.json['member_count'] == 1
    assert res.json['expired'] is False
    assert res.json['signed_in'] is False

    assert client.get('/join-leaderboard?token=nope').status_code == 404

def test_resolve_falls_back_when_inviter_has_no_name(client, create_user):
    admin = create_user('noname@example.com')
    board = create_leaderboard('Anon', 'habit_completion', admin)
    invitation = send_invitation(board.id, 'f@example.com', admin)
    assert resolve_invitation(invitation.token)['inviter_name'] == 'Someone'

def test_accept_requires_login(auth_client, board):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'f@example.com', admin)
    client.post('/logout')

    res = client.post(f'/join-leaderboard?token={invitation.token}')
    assert res.status_code == 401
    assert LeaderboardMember.query.count() == 1
    assert invitation.status == 'pending'

def test_accept_adds_member(auth_client, board, create_user, login_as):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'friend@example.com', admin)
    friend = create_user('friend@example.com')

    login_as('friend@example.com')
    res = client.post('/join-leaderboard', json={'token': invitation.token})
    assert res.status_code == 200
    assert res.json == {'leaderboard_id': board.id, 'status': 'accepted'}
    assert LeaderboardMember.query.filter_by(leaderboard_id=board.id, user_id=friend.id).count() == 1

    # used tokens are gone
    assert client.post('/join-leaderboard', json={'token': invitation.token}).status_code == 404
    assert client.get(f'/join-leaderboard?token={invitation.token}').json['expired'] is True

def test_accept_expired_invitation(auth_client, board, create_user, login_as):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'friend@example.com', admin,
                                 now=datetime.utcnow() - timedelta(days=8))
    create_user('friend@example.com')

    login_as('friend@example.com')
    res = client.post(f'/join-leaderboard?token={invitation.token}')
    assert res.status_code == 410
    assert res.json['code'] == 'expired'
    assert LeaderboardMember.query.count() == 1
    assert invitation.status == 'pending'

def test_accept_when_already_member(auth_client, board):
    _, admin = auth_client
    invitation = send_invitation(board.id, 'testuser@example.com', admin)
    accept_invitation(invitation.token, admin)
    assert LeaderboardMember.query.filter_by(leaderboard_id=board.id, user_id=admin.id).count() == 1
    assert invitation.status == 'accepted'

def test_accept_unknown_token(auth_client):
    _, user = auth_client
    with pytest.raises(NotFound):
        accept_invitation('missing', user)
    with pytest.raises(NotFound):
        accept_invitation(None, user)

def test_expired_check_happens_before_membership(auth_client, board, create_user):
    _, admin = auth_client
    invitation = send_invitation(board.id, 'f@example.com', admin, now=datetime(2026, 1, 1))
    friend = create_user('f@example.com')
    with pytest.raises(Expired):
        accept_invitation(invitation.token, friend, now=datetime(2026, 1, 9))
    accept_invitation(invitation.token, friend, now=datetime(2026, 1, 7))
    assert LeaderboardMember.query.filter_by(user_id=friend.id).count() == 1

def test_decline_requires_login(auth_client, board):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'friend@example.com', admin)
    client.post('/logout')

    res = client.post('/join-leaderboard/decline', json={'token': invitation.token})
    assert res.status_code == 401
    assert res.json['code'] == 'unauthenticated'
    assert invitation.status == 'pending'

def test_decline(auth_client, board, create_user, login_as):
    client, admin = auth_client
    invitation = send_invitation(board.id, 'friend@example.com', admin)
    create_user('friend@example.com')
    login_as('friend@example.com')

    res = client.post('/join-leaderboard/decline', json={'token': invitation.token})
    assert res.json['status'] == 'declined'
    assert client.post('/join-leaderboard/decline', json={'token': invitation.token}).status_code == 404
    assert client.post('/join-leaderboard', json={'token': invitation.token}).status_code == 404
    assert LeaderboardMember.query.count() == 1

def test_invitation_email_escapes_user_text(app, auth_client):
    client, admin = auth_client
    admin.profile.first_name = '<b>Mallory</b>'
    board = create_leaderboard('<a href="https://evil.example">Click</a>', 'study_time', admin)
    app.config['MAIL_SERVER'] = 'smtp.studyflow.test'
    with mail.record_messages() as outbox:
        send_invitation(board.id, 'friend@example.com', admin, origin='https://studyflow.test/"><script>')

    html = outbox[0].html
    assert '<a href="https://evil.example">' not in html
    assert '&lt;a href=&#34;https://evil.example&#34;&gt;Click&lt;/a&gt;' in html
    assert '<b>Mallory</b>' not in html
    assert '&lt;b&gt;Mallory&lt;/b&gt;' in html
    assert '<script>' not in html

def test_send_invitation_rejects_non_text_email(auth_client, board):
    client, _ = auth_client
    res = client.post(f'/leaderboards/{board.id}/invitations', json={'email': 12345})
    assert res.status_code == 400
    assert LeaderboardInvitation.query.count() == 0
