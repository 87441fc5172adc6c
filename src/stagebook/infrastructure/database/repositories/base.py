"""Base repository for SQLAlchemy-backed ports."""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository over a single ORM model.

    Repositories translate between ORM records and domain dataclasses.
    They flush but never commit: the session owner (request dependency or
    worker job) decides when the unit of work ends.
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_record(self, key: Any) -> T | None:
        """Get a record by primary key."""
        return await self.session.get(self.model_class, key)

    async def _add_record(self, record: T) -> T:
        self.session.add(record)
        await self.session.flush()
        return record
