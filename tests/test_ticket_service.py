from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from app.errors import NotFoundError, TransportError, ValidationError
from app.tickets.service import TicketNotFoundError, TicketService
from app.tickets.state import TicketPriority, TicketStatus


@pytest.fixture
def service(ticket_repository) -> TicketService:
    return TicketService(ticket_repository)


@pytest.mark.asyncio
async def test_create_applies_defaults(service):
    before = datetime.now(timezone.utc)

    ticket = await service.create_ticket({"title": "VPN drops"})

    assert ticket.title == "VPN drops"
    assert ticket.description == ""
    assert ticket.priority is TicketPriority.MEDIUM
    assert ticket.status is TicketStatus.OPEN
    assert ticket.agent == ""
    assert ticket.created_at >= before


@pytest.mark.asyncio
async def test_create_keeps_supplied_fields(service):
    created_at = datetime(2024, 2, 3, 4, 5, tzinfo=timezone.utc)

    ticket = await service.create_ticket(
        {
            "title": "Laptop",
            "description": "Screen flickers",
            "priority": "High",
            "status": "In Progress",
            "agent": "Sam",
            "created_at": created_at,
        }
    )

    assert ticket.priority is TicketPriority.HIGH
    assert ticket.status is TicketStatus.IN_PROGRESS
    assert ticket.agent == "Sam"
    assert ticket.created_at == created_at


@pytest.mark.asyncio
async def test_create_parses_iso_created_at(service):
    ticket = await service.create_ticket({"title": "Badge", "created_at": "2024-06-01T10:00:00Z"})

    assert ticket.created_at == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_treats_naive_datetime_as_utc(service):
    ticket = await service.create_ticket({"title": "Badge", "created_at": datetime(2024, 6, 1, 10, 0)})

    assert ticket.created_at.tzinfo is timezone.utc
    assert ticket.created_at == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"title": ""}, {"title": None}])
async def test_create_requires_title(service, payload):
    with pytest.raises(ValidationError, match="Title is required"):
        await service.create_ticket(payload)


@pytest.mark.asyncio
async def test_create_rejects_unknown_priority(service, ticket_repository):
    with pytest.raises(ValidationError, match="priority"):
        await service.create_ticket({"title": "X", "priority": "Urgent"})
    assert ticket_repository.rows == {}


@pytest.mark.asyncio
async def test_created_ids_are_unique(service):
    tickets = [await service.create_ticket({"title": f"T{index}"}) for index in range(5)]

    assert len({ticket.id for ticket in tickets}) == 5


@pytest.mark.asyncio
async def test_update_status_keeps_other_fields(service):
    original = await service.create_ticket({"title": "Mail", "description": "Bounces", "agent": "Kim"})

    await service.update_ticket(original.id, {"status": "Closed"})
    fetched = await service.get_ticket(original.id)

    assert fetched.status is TicketStatus.CLOSED
    assert (fetched.title, fetched.description, fetched.agent, fetched.priority, fetched.created_at) == (
        original.title,
        original.description,
        original.agent,
        original.priority,
        original.created_at,
    )


@pytest.mark.asyncio
async def test_update_with_empty_string_keeps_value_by_default(service):
    ticket = await service.create_ticket({"title": "Mail", "agent": "Kim"})

    await service.update_ticket(ticket.id, {"agent": ""})

    assert (await service.get_ticket(ticket.id)).agent == "Kim"


@pytest.mark.asyncio
async def test_presence_policy_clears_supplied_empty_field(ticket_repository):
    service = TicketService(ticket_repository, merge_policy="presence")
    ticket = await service.create_ticket({"title": "Mail", "agent": "Kim", "description": "old"})

    updated = await service.update_ticket(ticket.id, {"agent": "", "description": None})

    assert updated.agent == ""
    assert updated.description == "old"


@pytest.mark.asyncio
async def test_presence_policy_still_rejects_empty_title(ticket_repository):
    service = TicketService(ticket_repository, merge_policy="presence")
    ticket = await service.create_ticket({"title": "Mail"})

    with pytest.raises(ValidationError):
        await service.update_ticket(ticket.id, {"title": ""})
    assert (await service.get_ticket(ticket.id)).title == "Mail"


def test_unknown_merge_policy_is_rejected(ticket_repository):
    with pytest.raises(ValueError):
        TicketService(ticket_repository, merge_policy="latest")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_update_ignores_immutable_fields(service):
    ticket = await service.create_ticket({"title": "Mail"})

    updated = await service.update_ticket(ticket.id, {"id": 999, "created_at": "2000-01-01T00:00:00Z"})

    assert updated.id == ticket.id
    assert updated.created_at == ticket.created_at


@pytest.mark.asyncio
async def test_update_unknown_ticket_raises_not_found(service):
    with pytest.raises(TicketNotFoundError, match="Ticket not found"):
        await service.update_ticket(42, {"status": "Closed"})


@pytest.mark.asyncio
async def test_delete_then_get_and_delete_again_raise_not_found(service):
    ticket = await service.create_ticket({"title": "Mail"})

    await service.delete_ticket(ticket.id)

    with pytest.raises(NotFoundError):
        await service.get_ticket(ticket.id)
    with pytest.raises(NotFoundError):
        await service.delete_ticket(ticket.id)


@pytest.mark.asyncio
async def test_list_filters_by_agent_and_status(service):
    await service.create_ticket({"title": "A", "agent": "Kim"})
    await service.create_ticket({"title": "B", "agent": "Kim", "status": "Closed"})
    await service.create_ticket({"title": "C", "agent": "Lee"})

    assert [t.title for t in await service.list_tickets(agent="Kim", status=TicketStatus.OPEN)] == ["A"]
    assert [t.title for t in await service.list_tickets(agent="all", status="all")] == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_storage_failures_become_transport_errors(ticket_repository):
    ticket_repository.get_ticket = AsyncMock(side_effect=ConnectionResetError("connection reset"))
    service = TicketService(ticket_repository)

    with pytest.raises(TransportError) as excinfo:
        await service.get_ticket(1)

    assert excinfo.value.message == "Server error"
    assert excinfo.value.status_code == 500
