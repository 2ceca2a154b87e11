import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes import ping, tickets, users
from app.auth.repository import UserRepository
from app.auth.service import AuthService
from app.core.config import get_settings
from app.core.logging import configure_logging, init_tracer, log_requests, shutdown_tracer
from app.errors import HelpdeskError
from app.services.postgres import PostgresPool
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    postgres = PostgresPool(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_min_pool_size,
        max_size=settings.postgres_max_pool_size,
    )
    app.state.postgres = postgres
    app.state.ticket_service = None
    app.state.auth_service = None
    try:
        await postgres.test_connection()
        pool = await postgres.get_pool()
        ticket_service = TicketService(TicketRepository(pool), merge_policy=settings.ticket_merge_policy)
        auth_service = AuthService(UserRepository(pool))
        await ticket_service.ensure_schema()
        await auth_service.ensure_schema()
        app.state.ticket_service = ticket_service
        app.state.auth_service = auth_service
        logger.info("Database initialised")
    except Exception:  # service initialisation is best effort; requests get 503
        logger.exception("Failed to initialise database")
    try:
        yield
    finally:
        await postgres.close()
        shutdown_tracer(tracer_provider)


async def _helpdesk_error_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', message)}" if location else str(first.get("msg", message))
    return JSONResponse(status_code=400, content={"message": message})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.middleware("http")(log_requests)
    app.add_exception_handler(HelpdeskError, _helpdesk_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(ping.router)
    app.include_router(users.router)
    app.include_router(tickets.router)
    return app


app = create_app()
