from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from app.dependencies.services import TicketServiceDep
from app.tickets.models import Ticket
from app.tickets.state import TicketPriority, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    # title, priority and status are checked by the service so errors carry its messages
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    status: str | None = None
    agent: str | None = None
    created_at: datetime | None = None


class TicketUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    status: str | None = None
    agent: str | None = None


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    agent: str
    created_at: datetime


class TicketDeletedResponse(BaseModel):
    message: str = Field(default="Ticket deleted")
    id: int


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


@router.post("", response_model=TicketResponse)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketResponse:
    ticket = await service.create_ticket(payload.model_dump(exclude_none=True))
    return _to_response(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    agent: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(agent=agent or None, status=status_filter or None)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: int, service: TicketServiceDep) -> TicketResponse:
    ticket = await service.get_ticket(ticket_id)
    return _to_response(ticket)


@router.put("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(ticket_id: int, payload: TicketUpdateRequest, service: TicketServiceDep) -> TicketResponse:
    ticket = await service.update_ticket(ticket_id, payload.model_dump(exclude_unset=True))
    return _to_response(ticket)


@router.delete("/{ticket_id}", response_model=TicketDeletedResponse)
async def delete_ticket(ticket_id: int, service: TicketServiceDep) -> TicketDeletedResponse:
    await service.delete_ticket(ticket_id)
    return TicketDeletedResponse(id=ticket_id)
