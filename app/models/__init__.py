"""Database models package for the Drive relay service."""

from .base import Base
from .credential import UserCredential
from .oauth_state import AuthorizationState

__all__ = [
    "Base",
    "AuthorizationState",
    "UserCredential",
]
