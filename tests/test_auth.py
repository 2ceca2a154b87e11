from __future__ import annotations

from unittest.mock import AsyncMock

import asyncpg
import pytest
from fastapi.testclient import TestClient

from app.auth.models import Agent, User, UserProfile
from app.auth.repository import DuplicateEmailError, UserRepository
from app.auth.service import AuthService, InvalidCredentialsError
from app.dependencies import services as service_deps
from app.errors import ConflictError, ValidationError
from app.main import create_app

from conftest import DummyPool


class DummyUserRepository:
    def __init__(self):
        self.users: dict[str, User] = {}
        self.ensure_schema = AsyncMock()

    async def create_user(self, *, name, email, password_hash, role):
        if email in self.users:
            raise DuplicateEmailError(email)
        user = User(id=len(self.users) + 1, name=name, email=email, password_hash=password_hash, role=role)
        self.users[email] = user
        return user

    async def get_by_email(self, email):
        return self.users.get(email)

    async def list_agents(self):
        return [Agent(id=user.id, name=user.name, email=user.email, role=user.role) for user in self.users.values()]


@pytest.fixture
def auth_service():
    return AuthService(DummyUserRepository(), rounds=4)


@pytest.mark.asyncio
async def test_register_then_login_returns_profile(auth_service):
    await auth_service.register(name="Dana", email="dana@example.com", password="s3cret", role="agent")

    profile = await auth_service.login(email="dana@example.com", password="s3cret")

    assert profile == UserProfile(name="Dana", email="dana@example.com", role="agent")


@pytest.mark.asyncio
async def test_password_is_stored_hashed(auth_service):
    await auth_service.register(name="Dana", email="dana@example.com", password="s3cret", role="agent")

    stored = auth_service._repository.users["dana@example.com"]
    assert stored.password_hash != "s3cret"
    assert stored.password_hash.startswith("$2")


@pytest.mark.asyncio
async def test_duplicate_email_is_a_conflict(auth_service):
    await auth_service.register(name="Dana", email="dana@example.com", password="a", role="agent")

    with pytest.raises(ConflictError, match="Email already exists"):
        await auth_service.register(name="Other", email="dana@example.com", password="b", role="user")


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_email_are_rejected(auth_service):
    await auth_service.register(name="Dana", email="dana@example.com", password="right", role="agent")

    with pytest.raises(InvalidCredentialsError):
        await auth_service.login(email="dana@example.com", password="wrong")
    with pytest.raises(InvalidCredentialsError):
        await auth_service.login(email="nobody@example.com", password="right")


@pytest.mark.asyncio
async def test_missing_fields_fail_validation(auth_service):
    with pytest.raises(ValidationError, match="All fields are required"):
        await auth_service.register(name="", email="x@example.com", password="p", role="user")
    with pytest.raises(ValidationError, match="All fields are required"):
        await auth_service.login(email="x@example.com", password="")


@pytest.mark.asyncio
async def test_repository_translates_unique_violation():
    connection = AsyncMock()
    connection.fetchrow = AsyncMock(side_effect=asyncpg.UniqueViolationError("duplicate key"))
    repository = UserRepository(DummyPool(connection))

    with pytest.raises(DuplicateEmailError):
        await repository.create_user(name="Dana", email="dana@example.com", password_hash="h", role="agent")


@pytest.mark.asyncio
async def test_repository_lists_agents():
    connection = AsyncMock()
    connection.fetch = AsyncMock(return_value=[{"id": 1, "name": "Dana", "email": "dana@example.com", "role": "agent"}])
    repository = UserRepository(DummyPool(connection))

    agents = await repository.list_agents()

    assert agents == [Agent(id=1, name="Dana", email="dana@example.com", role="agent")]


@pytest.fixture
def user_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[service_deps.get_auth_service] = override_service
    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_login_route_returns_user(user_client):
    client, service = user_client
    service.login = AsyncMock(return_value=UserProfile(name="Dana", email="dana@example.com", role="agent"))

    response = client.post("/login", json={"email": "dana@example.com", "password": "pw"})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Login successful",
        "user": {"name": "Dana", "email": "dana@example.com", "role": "agent"},
    }


def test_register_route_reports_conflict(user_client):
    client, service = user_client
    service.register = AsyncMock(side_effect=ConflictError("Email already exists"))

    response = client.post(
        "/register",
        json={"name": "Dana", "email": "dana@example.com", "password": "pw", "role": "user"},
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Email already exists"}


def test_users_route_lists_agents(user_client):
    client, service = user_client
    service.list_agents = AsyncMock(return_value=[Agent(id=2, name="Lee", email="lee@example.com", role="user")])

    response = client.get("/users")

    assert response.json() == [{"id": 2, "name": "Lee", "email": "lee@example.com", "role": "user"}]
