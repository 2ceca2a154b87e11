from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class User:
    """Stored account, including the password hash."""

    id: int
    name: str
    email: str
    password_hash: str
    role: str


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Public view of an authenticated user."""

    name: str
    email: str
    role: str


@dataclass(frozen=True, slots=True)
class Agent:
    """User projection used as a ticket assignment label."""

    id: int
    name: str
    email: str
    role: str = ""
