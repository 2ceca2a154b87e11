from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from app.dependencies.services import AuthServiceDep

router = APIRouter(tags=["users"])


class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    role: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class MessageResponse(BaseModel):
    message: str


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    message: str
    user: UserProfileResponse


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str


@router.post("/register", response_model=MessageResponse)
async def register(payload: RegisterRequest, service: AuthServiceDep) -> MessageResponse:
    await service.register(
        name=payload.name.strip(),
        email=payload.email.strip(),
        password=payload.password,
        role=payload.role.strip(),
    )
    return MessageResponse(message="Registered successfully")


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: AuthServiceDep) -> LoginResponse:
    profile = await service.login(email=payload.email.strip(), password=payload.password)
    return LoginResponse(message="Login successful", user=UserProfileResponse.model_validate(profile))


@router.get("/users", response_model=list[AgentResponse])
async def list_users(service: AuthServiceDep) -> list[AgentResponse]:
    agents = await service.list_agents()
    return [AgentResponse.model_validate(agent) for agent in agents]
