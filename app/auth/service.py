from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg
import bcrypt

from app.errors import ConflictError, TransportError, ValidationError

from .models import Agent, UserProfile
from .repository import DuplicateEmailError, UserRepository

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class InvalidCredentialsError(ValidationError):
    default_message = "Invalid credentials"


class AuthService:
    """Account registration and credential checks backed by bcrypt hashes."""

    def __init__(self, repository: UserRepository, *, rounds: int = 10) -> None:
        self._repository = repository
        self._rounds = rounds

    async def ensure_schema(self) -> None:
        async with self._storage("ensure_schema"):
            await self._repository.ensure_schema()

    async def register(self, *, name: str, email: str, password: str, role: str) -> None:
        if not (name and email and password and role):
            raise ValidationError("All fields are required")

        password_hash = await asyncio.to_thread(self._hash, password)
        async with self._storage("register"):
            try:
                await self._repository.create_user(name=name, email=email, password_hash=password_hash, role=role)
            except DuplicateEmailError as exc:
                raise ConflictError("Email already exists") from exc
        logger.info("Registered user %s", email)

    async def login(self, *, email: str, password: str) -> UserProfile:
        if not (email and password):
            raise ValidationError("All fields are required")

        async with self._storage("login"):
            user = await self._repository.get_by_email(email)
        if user is None:
            raise InvalidCredentialsError()

        matches = await asyncio.to_thread(self._verify, password, user.password_hash)
        if not matches:
            raise InvalidCredentialsError()
        return UserProfile(name=user.name, email=user.email, role=user.role)

    async def list_agents(self) -> list[Agent]:
        async with self._storage("list_agents"):
            return await self._repository.list_agents()

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    @staticmethod
    def _verify(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    @asynccontextmanager
    async def _storage(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except _STORAGE_ERRORS as exc:
            logger.exception("User storage failure during %s", operation)
            raise TransportError("Server error") from exc
