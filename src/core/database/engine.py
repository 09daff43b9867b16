from sqlalchemy.ext.asyncio import create_async_engine

from src.main.config import config

DATABASE_URL = config.postgres.dsn_async

engine = create_async_engine(
    DATABASE_URL,
    echo=config.postgres.DB_ECHO,
    pool_size=10,
    max_overflow=10,
    pool_timeout=config.postgres.POSTGRES_POOL_TIMEOUT_SECONDS,
    pool_recycle=60 * 30,  # Restart the pool after 30 minutes
    pool_pre_ping=True,
    connect_args={
        # asyncpg: connection establishment and per-statement timeouts
        "timeout": config.postgres.POSTGRES_CONNECT_TIMEOUT_SECONDS,
        "command_timeout": config.postgres.POSTGRES_COMMAND_TIMEOUT_SECONDS,
    },
)
