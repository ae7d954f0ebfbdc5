"""
Shared fixtures for AgriLink tests

Each test gets a fresh SQLite file. The API and the services talk to it
through aiosqlite; fixtures seed and inspect it through a plain sync engine.
"""

import uuid
from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from src.api.main import app
from src.api.core.database import Base, get_db
from src.api.core.events import get_notifier
from src.api.models.crop import Crop
from src.api.models.requirement import Requirement
from tests.factories import RecordingNotifier, make_device, make_factory, make_farmer


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "agrilink_test.db"


@pytest.fixture
def sync_engine(db_path):
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_path, sync_engine):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def seed(sync_engine):
    """Insert rows and return them with their attributes still loaded"""
    def _seed(*rows):
        with Session(sync_engine, expire_on_commit=False) as session:
            session.add_all(rows)
            session.commit()
        return rows
    return _seed


@pytest.fixture
def fetch(sync_engine):
    """Run a select against the test database"""
    def _fetch(statement):
        with Session(sync_engine) as session:
            return session.scalars(statement).all()
    return _fetch


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def world(seed):
    """
    Two farmers and one factory

    Farmer F owns sensor S and active pump P; farmer G owns a sensor and a
    pump of their own. Factory K has no devices.
    """
    farmer_id, farmer_rows = make_farmer()
    other_farmer_id, other_rows = make_farmer("Ravi Kumar")
    factory_id, factory_rows = make_factory()
    seed(*farmer_rows, *other_rows, *factory_rows)

    sensor = make_device(farmer_id, "moisture_sensor", minutes=0)
    pump = make_device(farmer_id, "water_pump", minutes=1)
    other_sensor = make_device(other_farmer_id, "moisture_sensor", minutes=2)
    other_pump = make_device(other_farmer_id, "water_pump", minutes=3)
    seed(sensor, pump, other_sensor, other_pump)

    return SimpleNamespace(
        farmer_id=farmer_id,
        other_farmer_id=other_farmer_id,
        factory_id=factory_id,
        sensor_id=sensor.id,
        pump_id=pump.id,
        other_sensor_id=other_sensor.id,
        other_pump_id=other_pump.id,
    )


@pytest.fixture
def crop(seed, world):
    row = Crop(
        id=uuid.uuid4(),
        farmer_id=world.farmer_id,
        crop_name="Durum Wheat",
        category="grains",
        quantity=500.0,
        unit="kg",
        price_per_unit=32.5,
        harvest_date=date(2025, 3, 15),
        description="Sun dried, cleaned",
        available=True,
    )
    seed(row)
    return row


@pytest.fixture
def requirement(seed, world):
    row = Requirement(
        id=uuid.uuid4(),
        factory_id=world.factory_id,
        material_name="Wheat",
        category="grains",
        quantity_needed=2000.0,
        unit="kg",
        price_willing=30.0,
        description="Milling grade",
        urgent=True,
        active=True,
    )
    seed(row)
    return row
