from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .state import TicketPriority, TicketStatus


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket entry."""

    id: int
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    agent: str
    created_at: datetime


@dataclass(slots=True)
class NewTicket:
    """Fields of a ticket that has not been stored yet."""

    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    agent: str
    created_at: datetime


# Fields an update may touch; id and created_at are fixed at creation.
MUTABLE_FIELDS: tuple[str, ...] = ("title", "description", "priority", "status", "agent")
