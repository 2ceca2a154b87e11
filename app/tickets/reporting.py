from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .query import TicketLike
from .state import TicketStatus


@dataclass(frozen=True, slots=True)
class StatusSummary:
    """Dashboard counters for a ticket projection."""

    total: int
    open: int
    in_progress: int
    closed: int


def summarize_statuses(tickets: Iterable[TicketLike]) -> StatusSummary:
    counts = {status: 0 for status in TicketStatus}
    total = 0
    for ticket in tickets:
        total += 1
        status = _value(ticket.status)
        for member in TicketStatus:
            if member.value == status:
                counts[member] += 1
    return StatusSummary(
        total=total,
        open=counts[TicketStatus.OPEN],
        in_progress=counts[TicketStatus.IN_PROGRESS],
        closed=counts[TicketStatus.CLOSED],
    )


def report_rows(tickets: Iterable[Any]) -> list[dict[str, Any]]:
    """Flatten tickets into rows for the reports table."""

    rows: list[dict[str, Any]] = []
    for ticket in tickets:
        rows.append(
            {
                "id": ticket.id,
                "title": ticket.title,
                "status": _value(ticket.status),
                "priority": _value(ticket.priority),
                "agent": ticket.agent or "",
                "created": ticket.created_at.isoformat(),
            }
        )
    return rows


def _value(value: Any) -> str:
    return str(value.value) if isinstance(value, Enum) else str(value)
