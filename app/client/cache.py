from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.tickets.query import TicketFilters, TicketSort

from .storage import LocalStorage

logger = logging.getLogger(__name__)

STATE_KEY = "helpdesk_state"
LEGACY_STATE_KEY = "skillvision_state"
DEFAULT_ACTIVITY_LIMIT = 200


class CachedTicket(BaseModel):
    """Client copy of a ticket as last returned by the server."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    description: str = ""
    priority: str = "Medium"
    status: str = "Open"
    agent: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CachedAgent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    email: str = ""


class CachedUser(BaseModel):
    name: str
    email: str
    role: str = ""


class ActivityEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    msg: str
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ClientState(BaseModel):
    """Everything the client remembers between sessions."""

    tickets: list[CachedTicket] = Field(default_factory=list)
    agents: list[CachedAgent] = Field(default_factory=list)
    activity: list[ActivityEntry] = Field(default_factory=list)
    filters: TicketFilters = Field(default_factory=TicketFilters)
    sort: TicketSort = Field(default_factory=TicketSort)
    user: CachedUser | None = None


class ClientCache:
    """Owner of the client state and its persisted copy.

    The state object is mutated in place by the ``apply_*`` helpers, which
    mirror a server response into the cached ticket list without re-fetching
    it, and every mutation is written back to storage immediately.
    """

    def __init__(
        self,
        storage: LocalStorage,
        *,
        key: str = STATE_KEY,
        activity_limit: int = DEFAULT_ACTIVITY_LIMIT,
    ) -> None:
        if activity_limit < 1:
            raise ValueError("activity_limit must be positive")
        self._storage = storage
        self._key = key
        self._activity_limit = activity_limit
        self.state = ClientState()

    def load(self) -> ClientState:
        self._storage.remove_item(LEGACY_STATE_KEY)
        raw = self._storage.get_item(self._key)
        if raw is None:
            self.state = ClientState()
            return self.state
        try:
            self.state = ClientState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Stored client state under %r is invalid, starting fresh", self._key)
            self.state = ClientState()
        del self.state.activity[self._activity_limit :]
        return self.state

    def save(self, state: ClientState | None = None) -> None:
        """Persist ``state`` (or the current state) and make it current.

        The live state is only replaced after the write succeeds, so a
        ``TransportError`` leaves memory and disk agreeing.
        """

        state = self.state if state is None else state
        self._storage.set_item(self._key, state.model_dump_json())
        self.state = state

    def dump(self) -> str:
        return self.state.model_dump_json()

    def record_activity(self, message: str) -> ActivityEntry:
        entry = ActivityEntry(msg=message)
        activity = [entry, *self.state.activity][: self._activity_limit]
        self.save(self.state.model_copy(update={"activity": activity}))
        return entry

    def find_ticket(self, ticket_id: int) -> CachedTicket | None:
        for ticket in self.state.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def replace_tickets(self, tickets: Iterable[Mapping[str, Any]]) -> None:
        self._save_tickets([CachedTicket.model_validate(ticket) for ticket in tickets])

    def replace_agents(self, agents: Iterable[Mapping[str, Any]]) -> None:
        cached = [CachedAgent.model_validate(agent) for agent in agents]
        self.save(self.state.model_copy(update={"agents": cached}))

    def apply_created(self, ticket: Mapping[str, Any]) -> CachedTicket:
        cached = CachedTicket.model_validate(ticket)
        self._save_tickets([cached, *self.state.tickets])
        return cached

    def apply_updated(self, ticket: Mapping[str, Any]) -> CachedTicket:
        cached = CachedTicket.model_validate(ticket)
        tickets = list(self.state.tickets)
        for index, existing in enumerate(tickets):
            if existing.id == cached.id:
                tickets[index] = cached
                break
        else:
            tickets.insert(0, cached)
        self._save_tickets(tickets)
        return cached

    def apply_removed(self, ticket_id: int) -> None:
        self._save_tickets([ticket for ticket in self.state.tickets if ticket.id != ticket_id])

    def _save_tickets(self, tickets: list[CachedTicket]) -> None:
        self.save(self.state.model_copy(update={"tickets": tickets}))
