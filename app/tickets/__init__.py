"""Ticket lifecycle: storage, service rules and the display query engine."""

from .models import NewTicket, Ticket
from .query import TicketFilters, TicketSort, project
from .reporting import StatusSummary, report_rows, summarize_statuses
from .repository import TicketRepository
from .service import TicketNotFoundError, TicketService, TicketValidationError
from .state import TicketPriority, TicketStatus

__all__ = [
    "NewTicket",
    "StatusSummary",
    "Ticket",
    "TicketFilters",
    "TicketNotFoundError",
    "TicketPriority",
    "TicketRepository",
    "TicketService",
    "TicketSort",
    "TicketStatus",
    "TicketValidationError",
    "project",
    "report_rows",
    "summarize_statuses",
]
