"""
Pytest configuration and fixtures for league service tests.
"""
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from kicker.app import create_app
from kicker.accounts import SessionUser
from kicker.models import db

PASSWORD = 'secret123'


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')
    
    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Empty every table before each test."""
    with app.app_context():
        db.session.remove()
        
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        
        yield db.session
        
        db.session.rollback()


def register(client, username, password=PASSWORD):
    return client.post('/api/auth/register', json={
        'username': username,
        'password': password,
        'confirm': password
    })


@pytest.fixture
def owner_client(app):
    """Test client logged in as the tournament owner."""
    client = app.test_client()
    response = register(client, 'owner')
    assert response.status_code == 201
    return client


@pytest.fixture
def other_client(app):
    """Test client logged in as a user who owns nothing."""
    client = app.test_client()
    response = register(client, 'intruder')
    assert response.status_code == 201
    return client


@pytest.fixture
def sample_tournament(owner_client):
    """Tournament with roster [Ala, Bob], created through the API."""
    response = owner_client.post('/api/tournaments', json={
        'name': 'Friday Kicker',
        'players': ['Ala', 'Bob']
    })
    assert response.status_code == 201
    return response.get_json()['tournament']


@pytest.fixture
def sample_match_payload():
    return {
        'no': 1,
        'winner': 'Ala',
        'players': {
            'Ala': {'goals': 2, 'crossbars': 1, 'black_posts': 0, 'host': True},
            'Bob': {'goals': 1, 'crossbars': 0, 'black_posts': 1},
        }
    }


@pytest.fixture
def accounts(app):
    return app.accounts


@pytest.fixture
def registry(app):
    return app.registry


@pytest.fixture
def owner(accounts):
    """Registered user as a SessionUser."""
    user, _token = accounts.register('owner', PASSWORD, PASSWORD)
    return user


@pytest.fixture
def stranger():
    return SessionUser(id=999999, username='stranger')


@pytest.fixture
def register_user():
    """POST /api/auth/register with a matching confirmation."""
    return register
