from typing import Dict, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from pymysql.constants import FIELD_TYPE, FLAG

from planetlocal.core.config import Settings
from planetlocal.core.database import ExecutionOutcome, NativeColumn
from planetlocal.core.dispatcher import QueryDispatcher
from planetlocal.core.errors import ConnectionUnavailableError, ExecutionError
from planetlocal.main import create_app


class ScriptedConnection:
    """Stands in for GatewayConnection: canned outcomes keyed by SQL text."""

    encoding = "utf-8"

    def __init__(self):
        self.outcomes: Dict[str, ExecutionOutcome] = {}
        self.errors: Dict[str, Exception] = {}
        self.executed: List[str] = []
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def open(self) -> str:
        self.connected = True
        return "7"

    async def close(self):
        self.connected = False

    def script(self, sql: str, outcome: ExecutionOutcome):
        self.outcomes[sql] = outcome

    def fail(self, sql: str, error: Exception):
        self.errors[sql] = error

    async def execute(self, sql: str) -> ExecutionOutcome:
        if not self.connected:
            raise ConnectionUnavailableError()
        self.executed.append(sql)
        if sql in self.errors:
            raise self.errors[sql]
        return self.outcomes.get(sql, ExecutionOutcome())


# SELECT 1 as the server describes it
SELECT_ONE = ExecutionOutcome(
    columns=[
        NativeColumn(
            name="1",
            type_code=FIELD_TYPE.LONGLONG,
            flags=FLAG.NOT_NULL | FLAG.BINARY,
        )
    ],
    rows=[("1",)],
)

DUPLICATE_KEY = ExecutionError(
    "Duplicate entry '1' for key 'users.PRIMARY'",
    1062,
    "23000",
    "INSERT INTO users (id) VALUES (1)",
)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest_asyncio.fixture(scope="function")
async def connection():
    conn = ScriptedConnection()
    await conn.open()
    yield conn
    await conn.close()


@pytest.fixture
def dispatcher(connection):
    return QueryDispatcher(connection)


# Client
# ASGITransport does not run the lifespan, the fixture opens the fake itself
@pytest_asyncio.fixture(scope="function")
async def client(settings, connection):
    app = create_app(settings, connection=connection)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
