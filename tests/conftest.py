# tests/conftest.py

import datetime
import os

# Must be set before crm_backend.db builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import crm_backend.models  # noqa: F401
from crm_backend.db import Base, get_db
from crm_backend.main import create_app
from crm_backend.models import (
    ColdLead,
    Customer,
    Interaction,
    Tag,
    Transaction,
    User,
    UserRole,
    Website,
)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """TestClient sharing the test session with the app."""
    app = create_app()

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)


@pytest.fixture
def headers():
    """Request headers identifying `user` as the caller."""

    def _headers(user: User) -> dict:
        return {"X-User-Id": user.id}

    return _headers


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_website(db):
    def _make(name="Demo Site", url="demo.example.com", created_at=None):
        website = Website(name=name, url=url)
        if created_at is not None:
            website.created_at = created_at
        db.add(website)
        db.commit()
        return website

    return _make


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.AGENT, website=None, panels=None, manager=None, **kwargs):
        counter["n"] += 1
        user = User(
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            full_name=kwargs.pop("full_name", f"User {counter['n']}"),
            role=UserRole(role).value,
            website_id=website.id if website else None,
            panels=panels or [],
            manager_id=manager.id if manager else None,
            **kwargs,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_customer(db):
    def _make(website, external_id, **kwargs):
        kwargs.setdefault("status", "new")
        kwargs.setdefault("total_deposits", 0)
        kwargs.setdefault("total_withdrawals", 0)
        customer = Customer(website_id=website.id, external_id=external_id, **kwargs)
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_lead(db):
    counter = {"n": 0}

    def _make(website, external_id=None, **kwargs):
        counter["n"] += 1
        lead = ColdLead(
            website_id=website.id,
            external_id=external_id or f"lead-{counter['n']}",
            username=kwargs.pop("username", f"prospect{counter['n']}"),
            **kwargs,
        )
        db.add(lead)
        db.commit()
        return lead

    return _make


@pytest.fixture
def make_transaction(db):
    def _make(
        client,
        type="DEPOSIT",
        amount=10.0,
        date=None,
        website="demo.example.com",
        panel="Panel A",
        branch="Main",
    ):
        tx = Transaction(
            client=client,
            type=type,
            amount=amount,
            date=date or datetime.datetime(2024, 1, 1, 12, 0),
            website=website,
            panel=panel,
            branch=branch,
        )
        db.add(tx)
        db.commit()
        return tx

    return _make


@pytest.fixture
def make_interaction(db):
    def _make(customer, type="call", content="Call", created_at=None, agent=None):
        interaction = Interaction(
            customer_id=customer.id,
            agent_id=agent.id if agent else None,
            type=type,
            content=content,
        )
        if created_at is not None:
            interaction.created_at = created_at
        db.add(interaction)
        db.commit()
        return interaction

    return _make


@pytest.fixture
def make_tag(db):
    def _make(name="VIP", color="#ff0000"):
        tag = Tag(name=name, color=color)
        db.add(tag)
        db.commit()
        return tag

    return _make
