"""
Pytest fixtures for expenseflow backend tests.

Provides the app on in-memory SQLite, a clean database per test, a
recording notifier wired into the app's engine, and two companies'
worth of directory users.
"""

import pytest

from expenseflow import create_app, get_engine
from expenseflow.extensions import db
from expenseflow.models import User

from fakes import RecordingNotifier


COMPANY_A = 1
COMPANY_B = 2


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TELEGRAM_BOT_TOKEN': '',
        'SUPPORTED_CURRENCIES': ('UZS', 'USD'),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def notifier(app):
    """Swap the engine's dispatcher for a recorder for the duration of a test."""
    engine = get_engine(app)
    original = engine.notifier
    recorder = RecordingNotifier()
    engine.notifier = recorder
    yield recorder
    engine.notifier = original


@pytest.fixture(scope='function')
def engine(app, notifier):
    return get_engine(app)


def _user(db_session, login, role, company_id, telegram_id=None, full_name=None):
    user = User(
        login=login,
        full_name=full_name,
        role=role,
        company_id=company_id,
        telegram_id=telegram_id,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def employee(db_session):
    """Plain user in company A."""
    return _user(db_session, "employee_a", "user", COMPANY_A, telegram_id=1001, full_name="Сотрудник А")


@pytest.fixture(scope='function')
def director(db_session):
    """Director of company A."""
    return _user(db_session, "director_a", "director", COMPANY_A, telegram_id=2001, full_name="Директор А")


@pytest.fixture(scope='function')
def cashier(db_session):
    """Cashier of company A."""
    return _user(db_session, "cashier_a", "cashier", COMPANY_A, telegram_id=3001, full_name="Кассир А")


@pytest.fixture(scope='function')
def other_director(db_session):
    """Director of company B."""
    return _user(db_session, "director_b", "director", COMPANY_B, telegram_id=2002, full_name="Директор Б")
