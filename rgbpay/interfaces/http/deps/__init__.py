"""Reusable FastAPI dependencies."""

from .database import get_container, get_db_session
from .wallet import get_wallet_service

__all__ = [
    "get_container",
    "get_db_session",
    "get_wallet_service",
]
