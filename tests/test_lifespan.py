import logging

import pymysql
import pytest

from conftest import ScriptedConnection
from planetlocal.main import create_app


class UnreachableConnection(ScriptedConnection):
    def __init__(self):
        super().__init__()
        self.closed = False

    async def open(self) -> str:
        raise pymysql.err.OperationalError(2003, "Can't connect to MySQL server")

    async def close(self):
        self.closed = True
        await super().close()


@pytest.mark.asyncio
async def test_lifespan_opens_and_closes_connection(settings, caplog):
    """Connection is open while serving and closed on shutdown"""
    caplog.set_level(logging.INFO, logger="planetlocal.main")
    conn = ScriptedConnection()
    app = create_app(settings, connection=conn)

    async with app.router.lifespan_context(app):
        assert conn.is_connected

    assert not conn.is_connected
    assert "Connected to MySQL as: 7" in caplog.text
    assert "planetlocal stopped" in caplog.text


@pytest.mark.asyncio
async def test_lifespan_fails_when_mysql_is_unreachable(settings, caplog):
    """Startup aborts and logs the connection error"""
    caplog.set_level(logging.INFO, logger="planetlocal.main")
    conn = UnreachableConnection()
    app = create_app(settings, connection=conn)

    with pytest.raises(pymysql.err.OperationalError):
        async with app.router.lifespan_context(app):
            pass

    assert "Error connecting:" in caplog.text
    assert "Connected to MySQL as" not in caplog.text
    assert not conn.closed
