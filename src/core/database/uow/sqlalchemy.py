from contextlib import AsyncExitStack
from typing import Any, Self, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.repositories import BaseRepository
from src.core.database.transactions import safe_begin

RepositoryInstance = TypeVar("RepositoryInstance", bound=BaseRepository[Any])


class SQLAlchemyUnitOfWork:
    """
    Transaction boundary over a single AsyncSession.

    ``async with uow:`` opens a transaction (or a SAVEPOINT when one is already
    active); leaving the block with an exception rolls back unless the unit
    was already completed with ``commit()`` or ``rollback()``.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._exit_stack = AsyncExitStack()  # noqa
        self._is_completed = False

    async def __aenter__(self) -> Self:
        await self._exit_stack.__aenter__()
        await self._exit_stack.enter_async_context(safe_begin(self._session))
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None and not self._is_completed:
            await self.rollback()

        await self._exit_stack.__aexit__(exc_type, exc_val, exc_tb)

    async def flush(self) -> None:
        """Push pending changes so constraint violations surface inside the unit."""
        self._ensure_not_completed()
        await self._session.flush()

    async def commit(self) -> None:
        """
        Commit the transaction.

        Raises:
            RuntimeError: If the unit of work has already been completed
        """
        self._ensure_not_completed()
        await self._session.commit()
        self._is_completed = True

    async def rollback(self) -> None:
        """
        Rollback the transaction.

        Raises:
            RuntimeError: If the unit of work has already been completed
        """
        self._ensure_not_completed()
        await self._session.rollback()
        self._is_completed = True

    def _ensure_not_completed(self) -> None:
        if self._is_completed:
            raise RuntimeError("This unit of work has already been completed")

    @property
    def completed(self) -> bool:
        return self._is_completed

    @property
    def session(self) -> AsyncSession:
        return self._session
