import os

# Keep app startup off the real database file and out of the seeded courts
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SEED_DEFAULT_COURTS", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from clubplanner.database import get_session  # noqa: E402
from clubplanner.main import app  # noqa: E402
from clubplanner.repository import ChangeFeed, DocumentRepository  # noqa: E402
from clubplanner.services.planner import PlannerService  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. ClubDocument imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables dropped and recreated for every test so documents never leak
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh club_document table"""
    from clubplanner.models.club_document import ClubDocument  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="feed")
def feed_fixture():
    return ChangeFeed()


@pytest.fixture(name="repository")
def repository_fixture(session: Session, feed: ChangeFeed):
    return DocumentRepository(session, feed)


@pytest.fixture(name="planner")
def planner_fixture(repository: DocumentRepository):
    return PlannerService(repository)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    The override is set BEFORE TestClient() so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
