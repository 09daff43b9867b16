from src.core.database.uow.application import ApplicationUnitOfWork, get_uow
from src.core.database.uow.sqlalchemy import (
    RepositoryInstance,
    SQLAlchemyUnitOfWork,
)

__all__ = [
    "RepositoryInstance",
    "SQLAlchemyUnitOfWork",
    "ApplicationUnitOfWork",
    "get_uow",
]
