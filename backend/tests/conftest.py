"""
Pytest fixtures for pubpos backend tests.

Provides test database setup, seeded staff/products, an active day and a
command-API helper.
"""

import pytest

from pubpos import create_app
from pubpos.extensions import db
from pubpos.models import Category, Product, Staff
from pubpos.services import day_session_service
from pubpos.services.auth_service import hash_pin


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_TIMEZONE': 'UTC',
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


@pytest.fixture(scope='function')
def bartender(db_session):
    """Staff member without a PIN."""
    staff = Staff(name="Nika")
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def manager(db_session):
    """Staff member with PIN 1234."""
    staff = Staff(name="Marko", pin_hash=hash_pin("1234"))
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def beers(db_session):
    category = Category(name="Beer")
    db_session.add(category)
    db_session.flush()
    product = Product(name="Heineken", price_cents=500, quantity=10, low_stock_threshold=3, category_id=category.id)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cola(db_session):
    product = Product(name="Cola", price_cents=300, quantity=20, low_stock_threshold=5)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def tab_item(db_session):
    """Plenty of stock at 25.00 a unit, for revenue arithmetic."""
    product = Product(name="Rakija", price_cents=2500, quantity=100, low_stock_threshold=5)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def active_day(db_session, bartender):
    return day_session_service.start_day(bartender.id)


def call(client, name: str, payload: dict | None = None):
    """POST a command and return (status_code, json)."""
    resp = client.post(f'/api/commands/{name}', json=payload or {})
    return resp.status_code, resp.get_json()
