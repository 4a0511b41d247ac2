"""Shared plumbing for the SQL repositories."""

from __future__ import annotations

from typing import ClassVar, Generic, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class AsyncRepository(Generic[ModelT]):
    """Session-bound repository for one mapped class.

    Writes are flushed, never committed; the unit of work belongs to the caller.
    """

    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def get(self, ident: str) -> Optional[ModelT]:
        return await self._session.get(self.model, ident)

    async def add(self, instance: ModelT) -> ModelT:
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def flush(self) -> None:
        await self._session.flush()
