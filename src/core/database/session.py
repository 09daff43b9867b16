from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.database.engine import engine
from src.core.database.uow import ApplicationUnitOfWork, get_uow

async_session = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_unit_of_work(
    session: AsyncSession = Depends(get_session),
) -> AsyncGenerator[ApplicationUnitOfWork]:
    """
    Provide a fresh ApplicationUnitOfWork per request.

    Each refresh or login attempt gets its own session, so concurrent requests
    share nothing but the database.
    """
    uow = await get_uow(session)
    yield uow
