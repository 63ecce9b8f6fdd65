"""
Pytest fixtures for JRadiance tests.

Provides an in-memory SQLite database shared across threads (so the
TestClient sees the same data), principals of every role, and a product.
Row builders live in factories.py.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("CSRF_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config.database import Base, SessionLocal
from modules.admin.permissions import resolve_permissions
from modules.user.models import Profile  # noqa: F401
from modules.catalog.models import Product  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401
from modules.issue.models import Issue  # noqa: F401

from factories import make_profile, make_product


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal.configure(bind=engine)
    return engine


@pytest.fixture
def db(engine):
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from main import app
    return TestClient(app)


# ==========================================
# Principals
# ==========================================

@pytest.fixture
def chief(db):
    return make_profile(db, "chief_admin")


@pytest.fixture
def admin_user(db):
    return make_profile(db, "admin")


@pytest.fixture
def agent(db):
    return make_profile(db, "agent")


@pytest.fixture
def customer(db):
    return make_profile(db, "customer")


@pytest.fixture
def chief_perms(db, chief):
    return resolve_permissions(db, chief.id)


@pytest.fixture
def agent_perms(db, agent):
    return resolve_permissions(db, agent.id)


@pytest.fixture
def customer_perms(db, customer):
    return resolve_permissions(db, customer.id)


# ==========================================
# Catalog
# ==========================================

@pytest.fixture
def product(db):
    return make_product(db)
