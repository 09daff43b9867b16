from collections.abc import AsyncGenerator, Generator
import os

os.environ.setdefault("TESTING", "true")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.core.database.session import get_session, get_unit_of_work  # noqa: E402
from src.main.config import Config, get_settings  # noqa: E402
from src.main.web import get_application  # noqa: E402
from src.user.auth.dependencies import get_clock, get_user_repository  # noqa: E402
from src.user.auth.security import AccessTokenCodec  # noqa: E402
from tests.fakes.clock import FakeClock  # noqa: E402
from tests.fakes.db import FakeAsyncSession, FakeUnitOfWork  # noqa: E402
from tests.fakes.repositories import (  # noqa: E402
    InMemoryRefreshTokenRepository,
    InMemoryUserRepository,
)
from tests.helpers.constants import START_TIME, TEST_SECRET_KEY  # noqa: E402
from tests.helpers.overrides import DependencyOverrides  # noqa: E402


@pytest.fixture(scope="session")
def settings() -> Config:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START_TIME)


@pytest.fixture
def codec(clock: FakeClock) -> AccessTokenCodec:
    return AccessTokenCodec(TEST_SECRET_KEY, "HS256", clock=clock)


@pytest.fixture
def app() -> FastAPI:
    return get_application()


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def fake_session() -> FakeAsyncSession:
    return FakeAsyncSession()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def refresh_token_repository() -> InMemoryRefreshTokenRepository:
    return InMemoryRefreshTokenRepository()


@pytest.fixture
def fake_uow(
    fake_session: FakeAsyncSession,
    user_repository: InMemoryUserRepository,
    refresh_token_repository: InMemoryRefreshTokenRepository,
) -> FakeUnitOfWork:
    return FakeUnitOfWork(
        session=fake_session,
        repositories={
            "users": user_repository,
            "refresh_tokens": refresh_token_repository,
        },
    )


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    fake_session: FakeAsyncSession,
    user_repository: InMemoryUserRepository,
    refresh_token_repository: InMemoryRefreshTokenRepository,
    clock: FakeClock,
    settings: Config,
) -> FastAPI:
    async def provide_uow() -> AsyncGenerator[FakeUnitOfWork]:
        # One unit of work per request, sharing the in-memory stores
        yield FakeUnitOfWork(
            session=fake_session,
            repositories={
                "users": user_repository,
                "refresh_tokens": refresh_token_repository,
            },
        )

    dependency_overrides.set_async_value(get_session, fake_session)
    dependency_overrides.set(get_unit_of_work, provide_uow)
    dependency_overrides.set_value(get_settings, settings)
    dependency_overrides.set_value(get_clock, clock)
    dependency_overrides.set_value(get_user_repository, user_repository)
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
