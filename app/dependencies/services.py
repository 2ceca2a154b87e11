from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.auth.service import AuthService
from app.errors import ServiceUnavailableError
from app.tickets.service import TicketService


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise ServiceUnavailableError("Ticket service is not configured")
    return service


async def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise ServiceUnavailableError("Auth service is not configured")
    return service


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
