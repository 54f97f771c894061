"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.db.models import Base, Project
from src.db.session import enable_sqlite_foreign_keys, get_db
from src.main import app
from src.services.importer import ImportService, get_import_service
from src.services.repository import get_repository_factory
from src.worker import get_import_queue
from tests.utils import SHA_A, STRINGS_FILES, FakeRepository


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository() -> FakeRepository:
    repo = FakeRepository()
    repo.add_commit(SHA_A, dict(STRINGS_FILES))
    return repo


@pytest_asyncio.fixture
async def project(db_session: AsyncSession) -> Project:
    project = Project(
        name="demo",
        repository_url="git@github.com:example/demo.git",
        base_rfc5646_locale="en",
        targeted_rfc5646_locales={"en": True, "fr": True, "ja": False},
        skip_imports=[],
        key_exclusions=[],
    )
    db_session.add(project)
    await db_session.commit()
    await db_session.refresh(project)
    return project


@pytest.fixture
def notifications() -> list[dict]:
    return []


@pytest.fixture
def importer(notifications: list[dict]) -> ImportService:
    return ImportService(notifier=notifications.append, concurrency=2)


@pytest.fixture
def queued_imports() -> list[str]:
    return []


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    repository: FakeRepository,
    importer: ImportService,
    queued_imports: list[str],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db():
        yield db_session

    def enqueue(revision_id: str) -> str:
        queued_imports.append(revision_id)
        return f"task-{len(queued_imports)}"

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_repository_factory] = lambda: (lambda project: repository)
    app.dependency_overrides[get_import_queue] = lambda: enqueue
    app.dependency_overrides[get_import_service] = lambda: importer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
