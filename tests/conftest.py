import pytest
from app import create_app
from models import db, User, Profile
from werkzeug.security import generate_password_hash

TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'test-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'WTF_CSRF_ENABLED': False, # Disable CSRF for easier testing
    'MAIL_SERVER': None,
    'LOG_LEVEL': 'WARNING',
    'BASE_URL': 'http://studyflow.test',
}

@pytest.fixture
def app():
    return create_app(TEST_CONFIG)

@pytest.fixture
def client(app):
    with app.test_client() as client:
        with app.app_context():
            db.create_all()
            yield client
            db.session.remove()
            db.drop_all()

def make_user(email, password='password', first_name=None, with_profile=True):
    user = User(email=email, password_hash=generate_password_hash(password, method='scrypt'))
    db.session.add(user)
    db.session.flush()
    if with_profile:
        db.session.add(Profile(user_id=user.id, email=email, first_name=first_name))
    db.session.commit()
    return user

def login(client, email, password='password'):
    return client.post('/login', json={'email': email, 'password': password})

@pytest.fixture
def auth_client(client):
    user = make_user('testuser@example.com', first_name='Test')
    login(client, 'testuser@example.com')
    return client, user

@pytest.fixture
def runner(app):
    return app.test_cli_runner()

@pytest.fixture
def create_user(client):
    return make_user

@pytest.fixture
def login_as(client):
    def _login(email, password='password'):
        client.post('/logout')
        return login(client, email, password)
    return _login
