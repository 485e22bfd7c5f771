import json
import logging
from sqlalchemy.exc import OperationalError
from cache import QueryCache, get_cache
from logging_config import JsonLineFormatter, RequestIdFilter
from models import User, Leaderboard, Subject

def test_config(app):
    assert app.testing
    assert app.config['INVITATION_TTL_DAYS'] == 7
    assert app.config['SQLALCHEMY_DATABASE_URI'] == 'sqlite:///:memory:'

def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.json == {'status': 'ok'}

def test_unknown_route_is_json(client):
    res = client.get('/does-not-exist')
    assert res.status_code == 404
    assert res.json['code'] == 'not_found'

def test_store_failure_maps_to_503(app, client):
    @app.route('/boom')
    def boom():
        raise OperationalError('SELECT 1', {}, Exception('database is locked'))

    res = client.get('/boom')
    assert res.status_code == 503
    assert res.json['code'] == 'upstream_error'

def test_cache_get_or_load_and_ttl():
    cache = QueryCache(default_ttl=60)
    calls = []

    def loader():
        calls.append(1)
        return {'total': 5}

    assert cache.get_or_load(('daily_stats', 1, '2026-03-10'), loader) == {'total': 5}
    assert cache.get_or_load(('daily_stats', 1, '2026-03-10'), loader) == {'total': 5}
    assert len(calls) == 1

    cache.set(('weekly_stats', 1), 'stale', ttl=-1)
    assert cache.get(('weekly_stats', 1)) is None

def test_cache_invalidate_by_prefix():
    cache = QueryCache()
    cache.set(('daily_stats', 1, 'a'), 1)
    cache.set(('daily_stats', 1, 'b'), 2)
    cache.set(('daily_stats', 2, 'a'), 3)
    cache.set(('standings', 4), 4)

    assert cache.invalidate('daily_stats', 1) == 2
    assert cache.get(('daily_stats', 2, 'a')) == 3
    assert cache.invalidate('standings') == 1
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0

def test_cache_is_per_app(app):
    with app.app_context():
        assert isinstance(get_cache(), QueryCache)

def test_json_formatter():
    record = logging.LogRecord('services.stats', logging.INFO, __file__, 1, 'hello %s', ('world',), None)
    record.request_id = 'abc123'
    entry = json.loads(JsonLineFormatter().format(record))
    assert entry['message'] == 'hello world'
    assert entry['level'] == 'INFO'
    assert entry['logger'] == 'services.stats'
    assert entry['request_id'] == 'abc123'

def test_request_id_filter_outside_request():
    record = logging.LogRecord('app', logging.INFO, __file__, 1, 'boot', (), None)
    assert RequestIdFilter().filter(record) is True
    assert record.request_id == '-'

def test_request_id_header(client):
    res = client.get('/health', headers={'X-Request-ID': 'req-42'})
    assert res.headers['X-Request-ID'] == 'req-42'
    assert len(client.get('/health').headers['X-Request-ID']) == 12

def test_init_db_command(runner):
    result = runner.invoke(args=['init-db'])
    assert 'Database initialized.' in result.output

def test_seed_demo_command(app, runner):
    with app.app_context():
        runner.invoke(args=['init-db'])
        result = runner.invoke(args=['seed-demo'])
        assert "Demo account 'demo@studyflow.app' created." in result.output

        user = User.query.filter_by(email='demo@studyflow.app').one()
        assert Subject.query.filter_by(user_id=user.id).count() == 2
        assert Leaderboard.query.filter_by(admin_user_id=user.id).count() == 1

        result = runner.invoke(args=['seed-demo'])
        assert "already exists" in result.output
