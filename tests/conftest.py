# tests/conftest.py
"""Shared fixtures: in-memory SQLite store, seeded flats, FastAPI app behind an httpx gateway."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before society_vms.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = ""
os.environ["PHOTO_UPLOAD_URL"] = ""
os.environ["RETENTION_SWEEP_INTERVAL_SECONDS"] = "0"

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from society_vms.client.context import AppContext
from society_vms.client.gateway import HttpGateway
from society_vms.client.local_store import LocalStore
from society_vms.database import Base, create_tables, get_db
from society_vms.main import app
from society_vms.schemas.visitor_request import VisitorRequestCreate
from society_vms.services.flat_service import seed_flats

PHOTO = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_flats(session)
    yield session
    session.close()


@pytest.fixture
def api(db, session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def gateway(api):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=api), base_url="http://test/api/v1")
    return HttpGateway(client=client)


@pytest.fixture
def make_context(gateway, tmp_path):
    """Builds client sessions that share the backend but each keep their own local state file."""
    def _make(name="guard", online=True):
        return AppContext(gateway=gateway, store=LocalStore(tmp_path / f"{name}.json"), online=online)
    return _make


def make_request_body(**overrides) -> VisitorRequestCreate:
    data = {
        "visitor_name": "Jane Doe",
        "flat_code": "B203",
        "photo_url": PHOTO,
        "purpose": "Delivery",
    }
    data.update(overrides)
    return VisitorRequestCreate(**data)
