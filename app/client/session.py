from __future__ import annotations

import locale
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Mapping

from app.core.config import Settings
from app.errors import TransportError
from app.tickets.query import TicketSort, project
from app.tickets.reporting import StatusSummary, report_rows, summarize_statuses
from app.tickets.state import ALL, DEFAULT_STATUS

from .api import APIError, HelpdeskAPIClient
from .cache import CachedTicket, CachedUser, ClientCache, ClientState
from .storage import open_storage

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]

LOCAL_SAVE_FAILED = "Failed to save local changes"


class HelpdeskSession:
    """Client-side application state handle.

    Wraps the API client and the cache: every successful ticket call is folded
    into the cache from the server's response, and every failed call leaves
    the cache untouched and produces a notification instead of raising.
    """

    def __init__(self, client: HelpdeskAPIClient, cache: ClientCache, *, notifier: Notifier | None = None) -> None:
        self.client = client
        self.cache = cache
        self.notifications: list[str] = []
        self._notifier = notifier

    @property
    def state(self) -> ClientState:
        return self.cache.state

    def notify(self, message: str) -> None:
        self.notifications.append(message)
        if self._notifier is not None:
            self._notifier(message)

    def restore(self) -> ClientState:
        if self.cache.load().user is not None:
            self.refresh()
        return self.state

    def _commit(self, **changes: Any) -> bool:
        try:
            self.cache.save(self.state.model_copy(update=changes))
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return False
        return True

    # Accounts

    def login(self, email: str, password: str) -> CachedUser | None:
        email, password = email.strip(), password.strip()
        if not email or not password:
            self.notify("All fields are required")
            return None
        try:
            profile = self.client.login(email=email, password=password)
        except APIError as exc:
            logger.warning("Login failed: %s", exc)
            self.notify(exc.message)
            return None
        user = CachedUser.model_validate(profile)
        if not self._commit(user=user):
            return None
        self.refresh()
        return user

    def register(self, name: str, email: str, password: str, role: str = "user") -> bool:
        name, email, password = name.strip(), email.strip(), password.strip()
        if not name or not email or not password:
            self.notify("All fields are required")
            return False
        try:
            message = self.client.register(name=name, email=email, password=password, role=role)
        except APIError as exc:
            self.notify(exc.message)
            return False
        self.notify(message or "Registered successfully")
        return True

    def logout(self) -> None:
        self._commit(user=None)

    # Loading

    def refresh(self) -> None:
        self.load_tickets()
        self.load_agents()

    def load_tickets(self) -> bool:
        filters = self.state.filters
        try:
            tickets = self.client.list_tickets(
                agent=filters.agent if filters.agent != ALL else None,
                status=filters.status if filters.status != ALL else None,
            )
        except APIError as exc:
            logger.error("Failed to load tickets: %s", exc)
            self.notify("Failed to load tickets")
            return False
        try:
            self.cache.replace_tickets(tickets)
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return False
        return True

    def load_agents(self) -> bool:
        try:
            users = self.client.list_users()
        except APIError as exc:
            logger.error("Failed to load users: %s", exc)
            self.notify("Failed to load users")
            return False
        try:
            self.cache.replace_agents(users)
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return False
        return True

    # Ticket CRUD

    def create_ticket(self, data: Mapping[str, Any]) -> CachedTicket | None:
        payload = dict(data)
        payload["status"] = payload.get("status") or DEFAULT_STATUS.value
        payload["created_at"] = datetime.now(timezone.utc).isoformat()
        try:
            response = self.client.create_ticket(payload)
        except APIError as exc:
            logger.error("Ticket creation failed: %s", exc)
            self.notify("Failed to create ticket")
            return None
        try:
            ticket = self.cache.apply_created(response)
            self.cache.record_activity(f'Created ticket "{ticket.title}"')
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return None
        self.notify(f"New ticket: {ticket.title}")
        return ticket

    def update_ticket(self, ticket_id: int, changes: Mapping[str, Any]) -> CachedTicket | None:
        if self.cache.find_ticket(ticket_id) is None:
            return None
        try:
            response = self.client.update_ticket(ticket_id, changes)
        except APIError as exc:
            logger.error("Update failed: %s", exc)
            self.notify("Failed to update ticket")
            return None
        try:
            ticket = self.cache.apply_updated(response)
            self.cache.record_activity(f'Updated ticket "{ticket.title}"')
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return None
        return ticket

    def delete_ticket(self, ticket_id: int) -> bool:
        try:
            self.client.delete_ticket(ticket_id)
        except APIError as exc:
            logger.error("Delete failed: %s", exc)
            self.notify("Failed to delete ticket")
            return False
        try:
            self.cache.apply_removed(ticket_id)
            self.cache.record_activity(f"Deleted ticket {ticket_id}")
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
            return False
        return True

    # Filters and projections

    def set_filters(
        self,
        *,
        agent: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        search: str | None = None,
    ) -> list[CachedTicket]:
        selected = {"agent": agent, "status": status, "priority": priority, "search": search}
        changes = {name: value for name, value in selected.items() if value is not None}
        self._commit(filters=self.state.filters.model_copy(update=changes))
        return self.visible_tickets()

    def set_sort(self, key: str, order: str = "desc") -> list[CachedTicket]:
        self._commit(sort=TicketSort(key=key, order=order))
        return self.visible_tickets()

    def visible_tickets(self) -> list[CachedTicket]:
        return project(self.state.tickets, self.state.filters, self.state.sort)

    def dashboard(self) -> StatusSummary:
        return summarize_statuses(self.visible_tickets())

    def report(self) -> list[dict[str, Any]]:
        if not self.load_tickets():
            return []
        return report_rows(self.state.tickets)

    # Assistant

    def ask_assistant(self, prompt: str) -> str | None:
        prompt = prompt.strip()
        if not prompt:
            return None
        try:
            response = self.client.complete_prompt(prompt)
        except APIError as exc:
            logger.error("AI request failed: %s", exc)
            self.notify("AI request failed")
            return None
        try:
            self.cache.record_activity(f'AI responded to prompt: "{prompt}"')
        except TransportError:
            self.notify(LOCAL_SAVE_FAILED)
        return response


@contextmanager
def open_session(settings: Settings, *, notifier: Notifier | None = None) -> Iterator[HelpdeskSession]:
    """Restore a session from local storage and release its HTTP client on exit."""

    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logger.warning("Cannot apply the environment collation locale, keeping %s", locale.setlocale(locale.LC_COLLATE))
    client =HelpdeskAPIClient(base_url=settings.api_base_url, timeout=settings.api_timeout)
    with open_storage(settings.client_state_path) as storage:
        cache = ClientCache(storage, key=settings.client_state_key, activity_limit=settings.activity_limit)
        session = HelpdeskSession(client, cache, notifier=notifier)
        try:
            session.restore()
            yield session
        finally:
            client.close()
