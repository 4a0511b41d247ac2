"""Persistence for RGB wallets, invoices and assets."""

from .base import Base
from .session import build_engine, get_engine, get_session_factory, init_db, session_factory_for

__all__ = [
    "Base",
    "build_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_factory_for",
]
