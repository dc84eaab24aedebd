"""Pytest configuration: in-memory database, owners, properties and an API client."""

import os
from datetime import date

# Set test database URL BEFORE any imports from utility_settlement
# This ensures the module-level engine never touches a file database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from utility_settlement.database import get_db
from utility_settlement.main import app
from utility_settlement.models import Base, Contract, Property, Tenant, User
from utility_settlement.services.auth_service import OwnerContext


@pytest.fixture
def engine():
    """Fresh in-memory database shared by every session of a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def owner(db_session):
    user = User(name="Olivia Owner", email="olivia@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_owner(db_session):
    user = User(name="Oscar Other", email="oscar@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def ctx(owner):
    return OwnerContext(user_id=owner.id)


@pytest.fixture
def other_ctx(other_owner):
    return OwnerContext(user_id=other_owner.id)


@pytest.fixture
def property_obj(db_session, owner):
    property_obj = Property(owner_id=owner.id, name="Maple Street 12", address="Maple Street 12")
    db_session.add(property_obj)
    db_session.commit()
    return property_obj


@pytest.fixture
def make_tenant(db_session, property_obj):
    """Factory creating tenants (and optionally contracts) on ``property_obj``."""

    def _make(
        first_name: str,
        move_in: date | None,
        move_out: date | None = None,
        contracts: list[tuple[date, date | None]] | None = None,
        property_id: int | None = None,
    ) -> Tenant:
        tenant = Tenant(
            property_id=property_id or property_obj.id,
            first_name=first_name,
            last_name="Tenant",
            move_in_date=move_in,
            move_out_date=move_out,
        )
        db_session.add(tenant)
        db_session.flush()
        for start, end in contracts or []:
            db_session.add(
                Contract(
                    property_id=tenant.property_id,
                    tenant_id=tenant.id,
                    start_date=start,
                    end_date=end,
                )
            )
        db_session.commit()
        return tenant

    return _make


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(owner):
    return {"X-User-Id": str(owner.id)}
