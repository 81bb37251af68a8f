import os

# Settings are read at import time, so the test environment goes in first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from labtrack.core.database import get_session
from labtrack.main import app
from labtrack.src.models import Notification, Record, Transaction, User  # noqa: F401
from labtrack.src.tests.utils import TestDatabase


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "labtrack-test.db"


@pytest.fixture
async def engine(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def seeded_database(db_path):
    url = f"sqlite:///{db_path}"
    engine = create_engine(url)
    SQLModel.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with SessionLocal() as session:
        TestDatabase(session=session).populate_test_data()
    yield f"sqlite+aiosqlite:///{db_path}"
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def client(seeded_database):
    async def override_get_session():
        engine = create_async_engine(seeded_database)
        async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with async_session() as session:
            yield session
        await engine.dispose()

    app.dependency_overrides[get_session] = override_get_session
    # Not entered as a context manager: the lifespan would start the real scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()
