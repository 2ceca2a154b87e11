from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Literal, Mapping, TypeVar

import asyncpg

from app.errors import NotFoundError, TransportError, ValidationError

from .models import MUTABLE_FIELDS, NewTicket, Ticket
from .repository import TicketRepository
from .state import DEFAULT_PRIORITY, DEFAULT_STATUS, TicketPriority, TicketStatus

logger = logging.getLogger(__name__)

MergePolicy = Literal["truthy", "presence"]

_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_ChoiceT = TypeVar("_ChoiceT", bound=Enum)


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket could not be located."""

    default_message = "Ticket not found"


class TicketValidationError(ValidationError):
    """Raised when ticket input breaks a field rule."""


class TicketService:
    """High level orchestration for ticket lifecycle operations.

    ``merge_policy`` decides how ``update_ticket`` folds a partial payload into
    the stored row:

    * ``"truthy"`` overwrites a field only when the supplied value is truthy,
      so an empty string leaves the stored value untouched.
    * ``"presence"`` overwrites every supplied, non-null field, which allows an
      agent or description to be cleared with ``""``.
    """

    def __init__(self, repository: TicketRepository, *, merge_policy: MergePolicy = "truthy") -> None:
        if merge_policy not in ("truthy", "presence"):
            raise ValueError(f"Unknown merge policy: {merge_policy!r}")
        self._repository = repository
        self._merge_policy = merge_policy

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    async def ensure_schema(self) -> None:
        async with self._storage("ensure_schema"):
            await self._repository.ensure_schema()

    async def create_ticket(self, data: Mapping[str, Any]) -> Ticket:
        title = data.get("title")
        if not title:
            raise TicketValidationError("Title is required")

        created_at = data.get("created_at") or datetime.now(timezone.utc)
        if isinstance(created_at, str):
            created_at = _parse_timestamp(created_at)
        elif created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        ticket = NewTicket(
            title=str(title),
            description=str(data.get("description") or ""),
            priority=_coerce_choice(TicketPriority, data.get("priority") or DEFAULT_PRIORITY, "priority"),
            status=_coerce_choice(TicketStatus, data.get("status") or DEFAULT_STATUS, "status"),
            agent=str(data.get("agent") or ""),
            created_at=created_at,
        )
        async with self._storage("create_ticket"):
            created = await self._repository.create_ticket(ticket)
        logger.info("Created ticket %s", created.id)
        return created

    async def get_ticket(self, ticket_id: int) -> Ticket:
        async with self._storage("get_ticket"):
            ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError()
        return ticket

    async def list_tickets(self, *, agent: str | None = None, status: str | None = None) -> list[Ticket]:
        async with self._storage("list_tickets"):
            return await self._repository.list_tickets(agent=_plain(agent), status=_plain(status))

    async def update_ticket(self, ticket_id: int, changes: Mapping[str, Any]) -> Ticket:
        async with self._storage("update_ticket"):
            current = await self._repository.get_ticket(ticket_id)
        if current is None:
            raise TicketNotFoundError()

        merged = self._merge(current, changes)
        if not merged["title"]:
            raise TicketValidationError("Title is required")

        async with self._storage("update_ticket"):
            updated = await self._repository.update_ticket(
                ticket_id,
                title=str(merged["title"]),
                description=str(merged["description"]),
                priority=_coerce_choice(TicketPriority, merged["priority"], "priority"),
                status=_coerce_choice(TicketStatus, merged["status"], "status"),
                agent=str(merged["agent"]),
            )
        # deleted between the read and the write
        if updated is None:
            raise TicketNotFoundError()
        logger.info("Updated ticket %s", ticket_id)
        return updated

    async def delete_ticket(self, ticket_id: int) -> None:
        async with self._storage("delete_ticket"):
            deleted = await self._repository.delete_ticket(ticket_id)
        if not deleted:
            raise TicketNotFoundError()
        logger.info("Deleted ticket %s", ticket_id)

    def _merge(self, current: Ticket, changes: Mapping[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = {name: getattr(current, name) for name in MUTABLE_FIELDS}
        for name in MUTABLE_FIELDS:
            if name not in changes:
                continue
            value = changes[name]
            if self._merge_policy == "truthy" and not value:
                continue
            if value is None:
                continue
            merged[name] = value
        return merged

    @asynccontextmanager
    async def _storage(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except _STORAGE_ERRORS as exc:
            logger.exception("Ticket storage failure during %s", operation)
            raise TransportError("Server error") from exc


def _coerce_choice(enum_type: type[_ChoiceT], value: Any, field_name: str) -> _ChoiceT:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(str(member.value) for member in enum_type)
        raise TicketValidationError(f"Invalid {field_name}: {value!r} (expected one of {allowed})") from exc


def _plain(value: Any) -> str | None:
    if isinstance(value, Enum):
        return str(value.value)
    return value


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise TicketValidationError(f"Invalid created_at: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
