"""Test configuration and fixtures."""

import pytest
import tempfile
import os
from pathlib import Path

from schooldomain import create_app
from schooldomain.extensions import db as _db


@pytest.fixture
def app():
    """Create application for testing."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(db_fd)

    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()

    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def client(app):
    """Test client for making requests."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def db(app):
    """Database fixture."""
    return _db


@pytest.fixture
def make_school(client):
    """Register a school through the API and return the JSON response."""

    def _make(domain='sky1', school='Sky High', name='A. Bee', email='a@b.com', **extra):
        payload = {'domain': domain, 'school': school, 'name': name, 'email': email, **extra}
        resp = client.post('/buy-plan', json=payload)
        assert resp.status_code == 200
        return resp.get_json()

    return _make


@pytest.fixture
def make_subdomain(client):
    def _make(main_domain='sky1', subdomain='mrA', type='teacher', **extra):
        payload = {'mainDomain': main_domain, 'subdomain': subdomain, 'type': type, **extra}
        resp = client.post('/create-subdomain', json=payload)
        assert resp.status_code == 200
        return resp.get_json()

    return _make
