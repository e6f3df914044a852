"""
Pytest configuration and shared fixtures for production core tests.
"""
import os
import tempfile

import pytest
from flask import g

from plato import create_app
from plato.extensions import db
from plato.models import Company, Membership, User


@pytest.fixture(scope='function')
def app():
    """Create an app on a throwaway SQLite file; the app context stays pushed for the test."""
    db_fd, db_path = tempfile.mkstemp()

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'WTF_CSRF_ENABLED': False,
        'SECRET_KEY': 'test-secret-key',
        'RATELIMIT_ENABLED': False,
        'CRON_SECRET': 'test-cron-secret',
        'DOMAIN_EVENT_WEBHOOK_URL': None,
        'DOMAIN_EVENT_WEBHOOK_SECRET': None,
        'DOMAIN_EVENT_MAX_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def _make_member(company, email, role='OWNER', name=None):
    user = User(email=email, name=name or email.split('@')[0].title())
    db.session.add(user)
    db.session.flush()
    membership = Membership(company_id=company.id, user_id=user.id, role=role)
    db.session.add(membership)
    db.session.commit()
    return user


@pytest.fixture
def test_company(app):
    company = Company(name='Test Bakery', timezone='America/New_York')
    db.session.add(company)
    db.session.commit()
    return company


@pytest.fixture
def other_company(app):
    company = Company(name='Other Bakery', timezone='UTC')
    db.session.add(company)
    db.session.commit()
    return company


@pytest.fixture
def test_user(test_company):
    return _make_member(test_company, 'owner@testbakery.example')


@pytest.fixture
def test_member(test_user):
    """The signed-in user's membership row."""
    return test_user.memberships[0]


@pytest.fixture
def baker(test_company):
    """A second staff member of the test company."""
    return _make_member(test_company, 'baker@testbakery.example', role='EDITOR').memberships[0]


@pytest.fixture
def outsider(other_company):
    """Staff member of a different company."""
    return _make_member(other_company, 'staff@otherbakery.example', role='EDITOR').memberships[0]


@pytest.fixture
def login(client):
    """Return a helper that signs a user in through the session cookie."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['_user_id'] = str(user.id)
            sess['_fresh'] = True
        # The app context is shared with requests; drop any cached user.
        g.pop('_login_user', None)
        return user

    return _login
