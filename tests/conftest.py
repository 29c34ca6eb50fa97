from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool

from app import create_app
from extensions import db
from utils.session_manager import register_wallet

T0 = datetime(2025, 3, 1, 12, 0, 0)


class FakeClock:
    """Controllable naive-UTC clock injected through app.config['CLOCK']."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock, monkeypatch):
    monkeypatch.delenv('REDIS_URL', raising=False)
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'connect_args': {'check_same_thread': False},
            'poolclass': StaticPool,
        },
        'JWT_SECRET': 'test-secret',
        'SOCKETIO_ASYNC_MODE': 'threading',
        'REFERRAL_SIGNUP_BONUS': '10',
        'REFERRAL_MINING_SHARE': '0.10',
        'AD_REWARD_TOKENS': '5',
        'CLOCK': clock,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(app):
    def _register(wallet):
        user, _ = register_wallet(wallet)
        return user
    return _register
