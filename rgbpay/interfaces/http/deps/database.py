"""Container and session dependency providers."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from rgbpay.core.container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    container = get_container(request)
    async with container.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


__all__ = ["get_container", "get_db_session"]
