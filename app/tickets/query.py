"""Filter and sort projection applied to cached tickets before display."""

from __future__ import annotations

import locale
from datetime import datetime
from enum import Enum
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Literal, Protocol, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

from .state import ALL

SortOrder = Literal["asc", "desc"]

CREATED_KEY = "created"
SORTABLE_KEYS: tuple[str, ...] = (CREATED_KEY, "title", "description", "priority", "status", "agent")


class TicketLike(Protocol):
    title: str
    description: str
    priority: Any
    status: Any
    agent: str
    created_at: datetime


_T = TypeVar("_T", bound=TicketLike)


class TicketFilters(BaseModel):
    """Dashboard filter selection; ``"all"`` disables an equality filter."""

    model_config = ConfigDict(validate_assignment=True)

    agent: str = ALL
    status: str = ALL
    priority: str = ALL
    search: str = ""


class TicketSort(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    key: str = CREATED_KEY
    order: SortOrder = "desc"

    @field_validator("key")
    @classmethod
    def _known_key(cls, value: str) -> str:
        if value not in SORTABLE_KEYS:
            raise ValueError(f"Cannot sort by {value!r}")
        return value


def project(tickets: Iterable[_T], filters: TicketFilters, sort: TicketSort) -> list[_T]:
    """Return the visible tickets for the given filters, in display order.

    Equality filters run in the order agent, status, priority, then the
    case-insensitive search over title and description. The sort is stable in
    both directions, so re-projecting the output yields the same sequence.
    """

    visible = [ticket for ticket in tickets if _matches(ticket, filters)]
    reverse = sort.order == "desc"
    if sort.key == CREATED_KEY:
        return sorted(visible, key=_created_timestamp, reverse=reverse)
    return sorted(visible, key=cmp_to_key(_collating(sort.key)), reverse=reverse)


def _matches(ticket: TicketLike, filters: TicketFilters) -> bool:
    if filters.agent != ALL and _text(ticket.agent) != filters.agent:
        return False
    if filters.status != ALL and _text(ticket.status) != filters.status:
        return False
    if filters.priority != ALL and _text(ticket.priority) != filters.priority:
        return False
    if filters.search:
        needle = filters.search.lower()
        haystacks: Sequence[str] = (_text(ticket.title).lower(), _text(ticket.description).lower())
        if not any(needle in haystack for haystack in haystacks):
            return False
    return True


def _created_timestamp(ticket: TicketLike) -> float:
    return ticket.created_at.timestamp()


def _collating(key: str) -> Callable[[TicketLike, TicketLike], int]:
    def compare(left: TicketLike, right: TicketLike) -> int:
        return collate(_text(getattr(left, key, "")), _text(getattr(right, key, "")))

    return compare


def collate(left: str, right: str) -> int:
    """Compare two strings case-insensitively under the current collation.

    Case only breaks ties, so ``"apple"`` sorts before ``"Banana"`` even in the
    ``C`` locale.
    """

    folded = locale.strcoll(left.casefold(), right.casefold())
    if folded:
        return folded
    return locale.strcoll(left, right)


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return "" if value is None else str(value)
