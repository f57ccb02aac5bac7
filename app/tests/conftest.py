import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import database_exists, create_database, drop_database
from dotenv import load_dotenv

# Load environment variables from .env.test
load_dotenv(".env.test")

from app.database import Base, get_db
from app.main import app
from app.models import Program  # noqa: F401  (registers the programs table)
from app.repositories.program_repository import ProgramRepository
from app.schemas.user import UserRecord
from app.services.program_service import ProgramService
from app.services.user_service import get_user_service

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite:///./test_orion_program.db"
)


class FakeUserService:
    """In-memory stand-in for the remote User Service"""

    def __init__(self):
        self.users = {}
        self.calls = []
        self.error = None

    def add(self, id_user, name="Leader", email=None, phone=None):
        self.users[id_user] = UserRecord(id_user=id_user, name=name, email=email, phone=phone)
        return self.users[id_user]

    def get_user_by_id(self, user_id):
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        return self.users.get(user_id)


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database and return the engine."""
    if not database_exists(TEST_DATABASE_URL):
        create_database(TEST_DATABASE_URL)

    connect_args = {"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {}
    engine = create_engine(TEST_DATABASE_URL, connect_args=connect_args)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()
    drop_database(TEST_DATABASE_URL)


@pytest.fixture(scope="session")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(test_engine, session_factory):
    """Create a fresh session for each test."""
    db = session_factory()

    try:
        yield db
    finally:
        db.rollback()
        db.close()

        # Clear all tables for isolation between tests
        with test_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture
def user_service():
    return FakeUserService()


@pytest.fixture
def program_service(test_db, user_service):
    return ProgramService(ProgramRepository(test_db), user_service)


@pytest.fixture
def client(test_db, session_factory, user_service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_user_service] = lambda: user_service

    yield TestClient(app)

    app.dependency_overrides.clear()
