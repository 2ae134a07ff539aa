"""
Pytest fixtures for ardoise backend tests.

Provides test database setup, catalog/client factories and an app context.
"""

import pytest
from ardoise import create_app
from ardoise.extensions import db
from ardoise.services import catalog_service, client_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def beer(db_session):
    """Draft beer at 2.50 (cost 1.00)."""
    return catalog_service.create_item("Beer", 250, 100, "ALCOHOL")


@pytest.fixture(scope='function')
def burger(db_session):
    """Burger at 4.00 (cost 1.50)."""
    return catalog_service.create_item("Burger", 400, 150, "FOOD")


@pytest.fixture(scope='function')
def alice(db_session):
    return client_service.create_client("Alice")


@pytest.fixture(scope='function')
def bob(db_session):
    return client_service.create_client("Bob")
