from __future__ import annotations

from dataclasses import replace
from itertools import count

import pytest

from app.tickets.models import NewTicket, Ticket
from app.tickets.state import ALL, TicketPriority, TicketStatus


class DummyAcquire:
    def __init__(self, connection):
        self._connection = connection

    async def __aenter__(self):
        return self._connection

    async def __aexit__(self, exc_type, exc, tb):
        return False


class DummyPool:
    def __init__(self, connection):
        self._connection = connection

    def acquire(self):
        return DummyAcquire(self._connection)


class InMemoryTicketRepository:
    """Repository double keeping rows in a dict, ids from a counter."""

    def __init__(self):
        self.rows: dict[int, Ticket] = {}
        self._ids = count(1)

    async def ensure_schema(self) -> None:
        return None

    async def create_ticket(self, ticket: NewTicket) -> Ticket:
        stored = Ticket(
            id=next(self._ids),
            title=ticket.title,
            description=ticket.description,
            priority=ticket.priority,
            status=ticket.status,
            agent=ticket.agent,
            created_at=ticket.created_at,
        )
        self.rows[stored.id] = stored
        return replace(stored)

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        row = self.rows.get(ticket_id)
        return None if row is None else replace(row)

    async def list_tickets(self, *, agent: str | None = None, status: str | None = None) -> list[Ticket]:
        result = []
        for row in self.rows.values():
            if agent not in (None, ALL) and row.agent != agent:
                continue
            if status not in (None, ALL) and row.status.value != status:
                continue
            result.append(replace(row))
        return result

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
        if ticket_id not in self.rows:
            return None
        updated = replace(
            self.rows[ticket_id],
            title=title,
            description=description,
            priority=priority,
            status=status,
            agent=agent,
        )
        self.rows[ticket_id] = updated
        return replace(updated)

    async def delete_ticket(self, ticket_id: int) -> bool:
        return self.rows.pop(ticket_id, None) is not None


@pytest.fixture
def ticket_repository() -> InMemoryTicketRepository:
    return InMemoryTicketRepository()
