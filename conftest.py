"""Root conftest: shared Postgres fixtures for all test trees.

Database-backed tests share one PostgreSQL 16 testcontainer per session; each
test gets its own freshly created database so rows never leak between tests.
"""

from __future__ import annotations

import logging
import shutil
import time
import uuid
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from asyncpg.pool import Pool
    from testcontainers.postgres import PostgresContainer

    from rapport.db import Database

docker_available = shutil.which("docker") is not None
logger = logging.getLogger(__name__)

_TESTCONTAINER_STOP_RETRY_ATTEMPTS = 4
_TESTCONTAINER_STOP_BASE_DELAY_SECONDS = 0.1
_TRANSIENT_DOCKER_TEARDOWN_ERROR_MARKERS = (
    "did not receive an exit event",
    "no such container",
    "is already in progress",
    "is dead or marked for removal",
)


def _unique_test_db_name() -> str:
    return f"test_{uuid.uuid4().hex[:12]}"


def _is_transient_testcontainer_teardown_error(exc: BaseException) -> bool:
    """True for known transient Docker API teardown races from force-remove."""
    text = f"{getattr(exc, 'explanation', '') or ''} {exc}".lower()
    return any(marker in text for marker in _TRANSIENT_DOCKER_TEARDOWN_ERROR_MARKERS)


def _retry_testcontainer_stop(
    stop_call: Callable[[], None],
    *,
    max_attempts: int = _TESTCONTAINER_STOP_RETRY_ATTEMPTS,
    base_delay_seconds: float = _TESTCONTAINER_STOP_BASE_DELAY_SECONDS,
) -> None:
    """Retry transient Docker teardown races with bounded backoff."""
    delay = base_delay_seconds
    for attempt in range(1, max_attempts + 1):
        try:
            stop_call()
            return
        except Exception as exc:
            if attempt >= max_attempts or not _is_transient_testcontainer_teardown_error(exc):
                raise
            logger.warning(
                "Transient Docker API teardown race (attempt %s/%s): %s",
                attempt,
                max_attempts,
                exc,
            )
            time.sleep(delay)
            delay *= 2


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[PostgresContainer]:
    """Shared Postgres testcontainer for all DB-backed tests in this pytest session."""
    from testcontainers.postgres import PostgresContainer

    pg = PostgresContainer("postgres:16")
    pg.start()
    try:
        yield pg
    finally:
        _retry_testcontainer_stop(pg.stop)


def _database_for(container: PostgresContainer, **kwargs: Any) -> Database:
    from rapport.db import Database

    return Database(
        db_name=_unique_test_db_name(),
        host=container.get_container_host_ip(),
        port=int(container.get_exposed_port(5432)),
        user=container.username,
        password=container.password,
        **kwargs,
    )


@pytest.fixture
def provisioned_postgres_pool(
    postgres_container: PostgresContainer,
) -> Callable[..., AbstractAsyncContextManager[Pool]]:
    """Create a fresh database and asyncpg pool for a single test usage.

    Tests should use this as:
        async with provisioned_postgres_pool() as pool:
            ...
    """

    @asynccontextmanager
    async def _provision(
        *,
        min_pool_size: int = 1,
        max_pool_size: int = 3,
    ) -> AsyncIterator[Pool]:
        db = _database_for(
            postgres_container, min_pool_size=min_pool_size, max_pool_size=max_pool_size
        )
        await db.provision()
        pool = await db.connect()
        try:
            yield pool
        finally:
            await db.close()

    return _provision


@pytest.fixture
async def crm_db(postgres_container: PostgresContainer) -> AsyncIterator[Database]:
    """A connected Database with the CRM schema applied and the type catalog seeded."""
    from rapport.schema import init_schema

    db = _database_for(postgres_container, min_pool_size=1, max_pool_size=5)
    await db.provision()
    await db.connect()
    await init_schema(db.pool)
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def crm_pool(crm_db: Database) -> Pool:
    """The asyncpg pool of :func:`crm_db`."""
    return crm_db.pool


@pytest.fixture
async def empty_database(postgres_container: PostgresContainer) -> AsyncIterator[Database]:
    """A freshly created database with no schema and no open pool."""
    db = _database_for(postgres_container)
    await db.provision()
    try:
        yield db
    finally:
        await db.close()
