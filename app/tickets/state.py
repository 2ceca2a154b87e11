from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"


class TicketPriority(str, Enum):
    """Urgency levels a ticket can be filed with."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


DEFAULT_STATUS = TicketStatus.OPEN
DEFAULT_PRIORITY = TicketPriority.MEDIUM

# Query-string / filter value meaning "no constraint on this field".
ALL = "all"
