from typing import Any, Generic, TypeVar, cast

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from loggers import get_logger
from src.core.database.base import Base as SQLAlchemyBase

logger = get_logger(__name__)

T = TypeVar("T", bound=SQLAlchemyBase)


class BaseRepository(Generic[T]):
    """Base repository with common SQLAlchemy operations using context-managed sessions."""

    model: type[T]

    def __init__(self) -> None:
        if not hasattr(self, "model"):
            raise NotImplementedError("Subclasses must define class variable 'model'")

    async def create(
        self, session: AsyncSession, data: dict[str, Any], commit: bool = False
    ) -> T:
        """Create a new record using the provided session."""
        try:
            instance = self.model(**data)
            session.add(instance)
            if commit:
                await session.commit()
                await session.refresh(instance)
                logger.info("%s created successfully [Committed].", self.model.__name__)
            else:
                logger.debug(
                    "%s created [Staged, pending commit].", self.model.__name__
                )
            return instance
        except (IntegrityError, SQLAlchemyError):
            if commit:
                await session.rollback()
            raise

    async def exists(self, session: AsyncSession, **filters: Any) -> bool:
        """Determine if a record exists in the database matching the provided filters."""
        subquery = select(1).select_from(self.model).filter_by(**filters).limit(1)
        query = select(subquery.exists())
        return bool(await session.scalar(query))

    async def get_single(
        self,
        session: AsyncSession,
        for_update: bool = False,
        populate_existing: bool = False,
        **filters: Any,
    ) -> T | None:
        """
        Retrieve a single record using the provided session.

        ``populate_existing`` overwrites an instance already in the identity map
        with the row as it is now, e.g. after a concurrent update.
        """
        query = select(self.model).filter_by(**filters).limit(1)
        if populate_existing:
            query = query.execution_options(populate_existing=True)

        if for_update:
            table = getattr(self.model, "__table__")
            pk_columns = tuple(
                cast("ColumnElement[Any]", column)
                for column in table.primary_key.columns
            )
            query = query.with_for_update(of=pk_columns or (table,))

        result = await session.execute(query)
        return result.unique().scalars().first()

    async def update_where(
        self,
        session: AsyncSession,
        values: dict[str, Any],
        *criteria: ColumnElement[bool],
    ) -> int:
        """
        Issue a single conditional ``UPDATE`` and return the number of matched rows.

        The row lock taken by the statement makes the criteria a compare-and-swap:
        concurrent callers re-evaluate the ``WHERE`` clause after the winner commits.
        """
        if not criteria:
            raise ValueError("At least one criterion must be provided for update_where")
        query = (
            update(self.model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult[Any], await session.execute(query))
        logger.debug(
            "%s conditional update matched %s row(s).",
            self.model.__name__,
            result.rowcount,
        )
        return int(result.rowcount)
