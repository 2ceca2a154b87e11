"""Client-side API access, cached state and the session that ties them together."""

from .api import APIError, HelpdeskAPIClient
from .cache import ActivityEntry, CachedAgent, CachedTicket, CachedUser, ClientCache, ClientState
from .session import HelpdeskSession, open_session
from .storage import LocalStorage, open_storage

__all__ = [
    "APIError",
    "ActivityEntry",
    "CachedAgent",
    "CachedTicket",
    "CachedUser",
    "ClientCache",
    "ClientState",
    "HelpdeskAPIClient",
    "HelpdeskSession",
    "LocalStorage",
    "open_session",
    "open_storage",
]
