from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse, summary="Service banner")
async def root() -> str:
    return "Hello from HelpDesk backend!"


@router.get("/ping", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}
