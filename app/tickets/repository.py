from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

import asyncpg

from .models import NewTicket, Ticket
from .state import ALL, TicketPriority, TicketStatus


class TicketRepository:
    """Data access layer for ticket records.

    Every method runs a single statement on a pooled connection, so each call is
    atomic for the row it touches. Unknown ids are reported through the return
    value (``None`` or ``False``), never by raising.
    """

    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id BIGSERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        priority TEXT NOT NULL,
        status TEXT NOT NULL,
        agent TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _INSERT_TICKET_SQL = """
    INSERT INTO tickets (title, description, priority, status, agent, created_at)
    VALUES ($1, $2, $3, $4, $5, $6)
    RETURNING id, title, description, priority, status, agent, created_at
    """

    _UPDATE_TICKET_SQL = """
    UPDATE tickets
    SET title = $2,
        description = $3,
        priority = $4,
        status = $5,
        agent = $6
    WHERE id = $1
    RETURNING id, title, description, priority, status, agent, created_at
    """

    _SELECT_TICKET_SQL = """
    SELECT id, title, description, priority, status, agent, created_at
    FROM tickets
    WHERE id = $1
    """

    _LIST_TICKETS_SQL = """
    SELECT id, title, description, priority, status, agent, created_at
    FROM tickets
    """

    _DELETE_TICKET_SQL = """
    DELETE FROM tickets WHERE id = $1 RETURNING id
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_TICKETS_SQL)

    async def create_ticket(self, ticket: NewTicket) -> Ticket:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(
                self._INSERT_TICKET_SQL,
                ticket.title,
                ticket.description,
                ticket.priority.value,
                ticket.status.value,
                ticket.agent,
                ticket.created_at,
            )
        if row is None:
            raise RuntimeError("Failed to insert ticket")
        return self._row_to_ticket(row)

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, ticket_id)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def list_tickets(self, *, agent: str | None = None, status: str | None = None) -> list[Ticket]:
        query, params = self._build_list_query(agent=agent, status=status)
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(query, *params)
        return [self._row_to_ticket(row) for row in rows]

    async def update_ticket(
        self,
        ticket_id: int,
        *,
        title: str,
        description: str,
        priority: TicketPriority,
        status: TicketStatus,
        agent: str,
    ) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(
                self._UPDATE_TICKET_SQL,
                ticket_id,
                title,
                description,
                priority.value,
                status.value,
                agent,
            )
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def delete_ticket(self, ticket_id: int) -> bool:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._DELETE_TICKET_SQL, ticket_id)
        return row is not None

    @classmethod
    def _build_list_query(cls, *, agent: str | None, status: str | None) -> tuple[str, list[Any]]:
        conditions: list[str] = []
        params: list[Any] = []
        for column, value in (("agent", agent), ("status", status)):
            if value is None or value == ALL:
                continue
            params.append(value)
            conditions.append(f"{column} = ${len(params)}")

        query = cls._LIST_TICKETS_SQL
        if conditions:
            query += "WHERE " + " AND ".join(conditions) + "\n"
        return query + "ORDER BY id ASC", params

    @staticmethod
    def _row_to_ticket(row: Mapping[str, Any]) -> Ticket:
        return Ticket(
            id=int(row["id"]),
            title=str(row["title"]),
            description=str(row["description"] or ""),
            priority=TicketPriority(str(row["priority"])),
            status=TicketStatus(str(row["status"])),
            agent=str(row["agent"] or ""),
            created_at=_ensure_datetime(row["created_at"]),
        )


def _ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromisoformat(str(value))
