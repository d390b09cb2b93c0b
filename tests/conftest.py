# tests/conftest.py
import uuid

import pytest
from fastapi.testclient import TestClient

from auth_service.config import Settings
from auth_service.db import Base, TransactionCoordinator, build_engine, build_session_factory
from auth_service.main import create_app
from auth_service.repository import UserRepository
from auth_service.usecases import AuthUseCase, UserUseCase
from auth_service.utils import PasswordHasher

TEST_PASSWORD = "password123"
TEST_SECRET = b"test-secret-key-for-auth-service"

# bcrypt con el coste mínimo para que las pruebas sean rápidas
TEST_ROUNDS = 4


@pytest.fixture
def settings(tmp_path):
    """Settings over a throwaway SQLite file, one per test."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'auth.db'}",
        jwt_secret_key=TEST_SECRET,
        jwt_expire_hours=1,
        bcrypt_rounds=TEST_ROUNDS,
    )


# --- Fixtures de capa de datos / casos de uso ---

@pytest.fixture
def engine(settings):
    engine = build_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def repo(session_factory):
    return UserRepository(session_factory)


@pytest.fixture
def transactions(session_factory):
    return TransactionCoordinator(session_factory)


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def auth_usecase(repo, hasher, transactions):
    return AuthUseCase(repo, hasher, transactions)


@pytest.fixture
def user_usecase(repo, hasher, transactions):
    return UserUseCase(repo, hasher, transactions)


# --- Fixtures HTTP ---

@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
    app.state.engine.dispose()


def register_payload(**overrides):
    suffix = uuid.uuid4().hex[:8]
    payload = {
        "username": f"testuser_{suffix}",
        "email": f"testuser_{suffix}@example.com",
        "password": TEST_PASSWORD,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def test_user_token(client):
    """
    1. Registra un nuevo usuario único.
    2. Inicia sesión para obtener un token.
    3. Devuelve los datos del usuario y el token.
    """
    payload = register_payload()
    r_register = client.post("/api/v1/auth/register", json=payload)
    assert r_register.status_code == 201, r_register.text
    user = r_register.json()["data"]

    r_login = client.post("/api/v1/auth/login", json={"email": payload["email"], "password": TEST_PASSWORD})
    assert r_login.status_code == 200, r_login.text

    return {
        "user_id": user["id"],
        "username": payload["username"],
        "email": payload["email"],
        "token": r_login.json()["data"]["token"],
    }


# Fixture de utilidad para las cabeceras de autorización
@pytest.fixture
def auth_headers(test_user_token):
    return {"Authorization": f"Bearer {test_user_token['token']}"}
