from __future__ import annotations

from typing import Any, Mapping

import asyncpg

from .models import Agent, User


class DuplicateEmailError(Exception):
    """Raised by the repository when the email is already registered."""


class UserRepository:
    """Data access layer for user accounts."""

    _CREATE_USERS_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id BIGSERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        role TEXT NOT NULL
    )
    """

    _INSERT_USER_SQL = """
    INSERT INTO users (name, email, password, role)
    VALUES ($1, $2, $3, $4)
    RETURNING id, name, email, password, role
    """

    _SELECT_BY_EMAIL_SQL = """
    SELECT id, name, email, password, role
    FROM users
    WHERE email = $1
    """

    _LIST_USERS_SQL = """
    SELECT id, name, email, role
    FROM users
    ORDER BY id ASC
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_USERS_SQL)

    async def create_user(self, *, name: str, email: str, password_hash: str, role: str) -> User:
        async with self._pool.acquire() as connection:
            try:
                row = await connection.fetchrow(self._INSERT_USER_SQL, name, email, password_hash, role)
            except asyncpg.UniqueViolationError as exc:
                raise DuplicateEmailError(email) from exc
        if row is None:
            raise RuntimeError("Failed to insert user")
        return self._row_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_BY_EMAIL_SQL, email)
        if row is None:
            return None
        return self._row_to_user(row)

    async def list_agents(self) -> list[Agent]:
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(self._LIST_USERS_SQL)
        return [
            Agent(id=int(row["id"]), name=str(row["name"]), email=str(row["email"]), role=str(row["role"]))
            for row in rows
        ]

    @staticmethod
    def _row_to_user(row: Mapping[str, Any]) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            password_hash=str(row["password"]),
            role=str(row["role"]),
        )
