from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from app.errors import HelpdeskError


class APIError(HelpdeskError):
    """Failure reported by, or while reaching, the helpdesk API."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown server error"

    if isinstance(data, Mapping):
        for key in ("message", "detail", "error"):
            value = data.get(key)
            if isinstance(value, str):
                return value
    return "The request could not be completed"


@dataclass(slots=True)
class HelpdeskAPIClient:
    """Small synchronous client for the helpdesk REST API."""

    base_url: str
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None
    _client: httpx.Client | None = field(default=None, init=False, repr=False)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url.rstrip("/"),
                timeout=self.timeout,
                transport=self.transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        normalized = path if path.startswith("/") else f"/{path}"
        try:
            response = self._http().request(method, normalized, **kwargs)
        except httpx.HTTPError as exc:
            raise APIError(f"API request failed: {exc}", status_code=503) from exc

        if response.status_code >= 400:
            raise APIError(_extract_error_message(response), status_code=response.status_code, response=response)

        if not response.content:
            return None
        if "application/json" in response.headers.get("Content-Type", ""):
            return response.json()
        return response.text

    # Accounts
    def login(self, *, email: str, password: str) -> Mapping[str, Any]:
        data = self._request("POST", "/login", json={"email": email, "password": password})
        return data["user"]

    def register(self, *, name: str, email: str, password: str, role: str = "user") -> str:
        payload = {"name": name, "email": email, "password": password, "role": role}
        data = self._request("POST", "/register", json=payload)
        return str(data.get("message", "")) if isinstance(data, Mapping) else ""

    def list_users(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/users") or [])

    # Tickets
    def list_tickets(self, *, agent: str | None = None, status: str | None = None) -> list[Mapping[str, Any]]:
        params = {key: value for key, value in (("agent", agent), ("status", status)) if value}
        return list(self._request("GET", "/tickets", params=params) or [])

    def get_ticket(self, ticket_id: int) -> Mapping[str, Any]:
        return self._request("GET", f"/tickets/{ticket_id}")

    def create_ticket(self, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._request("POST", "/tickets", json=dict(payload))

    def update_ticket(self, ticket_id: int, changes: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._request("PUT", f"/tickets/{ticket_id}", json=dict(changes))

    def delete_ticket(self, ticket_id: int) -> Mapping[str, Any]:
        return self._request("DELETE", f"/tickets/{ticket_id}")

    # Text generation proxy
    def complete_prompt(self, prompt: str) -> str:
        data = self._request("POST", "/api/ai-response", json={"prompt": prompt})
        if not isinstance(data, Mapping) or "response" not in data:
            raise APIError("Malformed text generation response", status_code=502)
        return str(data["response"])
