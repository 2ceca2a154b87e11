"""Account registration, login and agent listing."""

from .models import Agent, User, UserProfile
from .repository import DuplicateEmailError, UserRepository
from .service import AuthService, InvalidCredentialsError

__all__ = [
    "Agent",
    "AuthService",
    "DuplicateEmailError",
    "InvalidCredentialsError",
    "User",
    "UserProfile",
    "UserRepository",
]
