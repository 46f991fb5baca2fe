import os

# app.core.config 가 import 되기 전에 테스트용 환경 변수 설정
os.environ.setdefault("JWT_SECRET_KEY", "test-signing-secret-0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings, TokenSettings
from app.db.base import Base
from app.dependencies.db import get_db
from app.main import app
from app.schemas.auth import RegisterRequest
from app.services import user_service
from app.services.token_service import TokenService

TEST_PASSWORD = "testpassword123!"


@pytest.fixture
def engine():
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
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def token_settings():
    return TokenSettings.from_settings(settings)


@pytest.fixture
def token_service(db_session, token_settings):
    return TokenService(db_session, token_settings)


def make_register_request(**overrides) -> RegisterRequest:
    data = {
        "full_name": "테스트사용자",
        "phone_number": f"010{uuid.uuid4().int % 10**8:08d}",
        "password": TEST_PASSWORD,
        "confirm_password": TEST_PASSWORD,
        "email": f"user_{uuid.uuid4().hex[:8]}@example.com",
    }
    data.update(overrides)
    return RegisterRequest(**data)


@pytest.fixture
def make_user(db_session):
    def _make_user(**overrides):
        return user_service.create_user(db_session, make_register_request(**overrides))
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
