import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from whateat_recipes.app.api.deps import get_db_session
from whateat_recipes.app.core.config import get_settings
from whateat_recipes.app.db import models  # noqa: F401
from whateat_recipes.app.db.base import Base
from whateat_recipes.app.main import create_app
from whateat_recipes.app.services.url_parsing import html_fetcher


@pytest.fixture(scope="session")
def engine():
    engine = create_engine("sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}, future=True)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autocommit=False, autoflush=False, future=True)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def isolated_session():
    """A private in-memory database for code paths that roll back the session."""
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def app(db_session):
    app = create_app()
    app.state.llm_client = None

    def override_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_settings():
    return get_settings()


def make_token(user_id: str, email: str, settings) -> str:
    payload = {"sub": str(user_id), "email": email}
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_algorithm)


@pytest.fixture
def user_token(auth_settings):
    return make_token("user-1", "user1@example.com", auth_settings)


@pytest.fixture
def other_user_token(auth_settings):
    return make_token("user-2", "user2@example.com", auth_settings)


@pytest.fixture
def public_dns(monkeypatch):
    """Resolve every hostname to a public address unless a test overrides it."""
    resolved = {}

    async def fake_resolve(hostname: str):
        return resolved.get(hostname, ["93.184.216.34"])

    monkeypatch.setattr(html_fetcher, "resolve_host", fake_resolve)
    return resolved
