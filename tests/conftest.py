import os

# settings are read at import time
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef012")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from taskhub.auth.crypto import hash_password
from taskhub.db import get_db, init_db, make_engine
from taskhub.main import create_app
from taskhub.models.base import Base
from taskhub.models.user import User

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "Demo1234"

@pytest.fixture()
def db_session() -> Session:
    engine = make_engine("sqlite+pysqlite://")
    init_db(engine)

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def app(db_session: Session):
    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return app

@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)

@pytest.fixture()
def make_client(app):
    # fresh cookie jar per call
    def _make() -> TestClient:
        return TestClient(app)

    return _make

def create_user(db: Session, email: str, password: str | None = None) -> User:
    u = User(email=email, username=email.split("@", 1)[0])
    if password is not None:
        u.password_hash = hash_password(password)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u

@pytest.fixture()
def demo_user(db_session: Session) -> User:
    return create_user(db_session, DEMO_EMAIL, DEMO_PASSWORD)

@pytest.fixture()
def make_user(db_session: Session):
    def _make(email: str, password: str | None = None) -> User:
        return create_user(db_session, email, password)

    return _make
