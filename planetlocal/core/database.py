import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

import pymysql
from pymysql.charset import charset_by_name
from pymysql.constants import CR
from pymysql.converters import conversions
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from planetlocal.core.config import Settings
from planetlocal.core.errors import ConnectionUnavailableError, ExecutionError

logger = logging.getLogger(__name__)

# Keep the parameter encoders, drop every result decoder: values stay in the
# server's own text form (str for text columns, bytes for binary ones).
TEXT_CONVERSIONS = {k: v for k, v in conversions.items() if type(k) is not int}

DISCONNECT_ERRORS = {
    CR.CR_SERVER_GONE_ERROR,
    CR.CR_SERVER_LOST,
    CR.CR_SERVER_LOST_EXTENDED,
}

DEFAULT_SQLSTATE = "HY000"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    LOST = "lost"


@dataclass(frozen=True)
class NativeColumn:
    name: str
    type_code: int
    flags: int = 0
    table: str = ""
    org_table: str = ""
    db: str = ""
    org_name: str = ""


@dataclass
class ExecutionOutcome:
    columns: List[NativeColumn] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    insert_id: int = 0
    rows_affected: int = 0


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value or ""


def is_disconnect(error: pymysql.err.MySQLError) -> bool:
    if isinstance(error, pymysql.err.InterfaceError):
        return True
    return bool(error.args) and error.args[0] in DISCONNECT_ERRORS


class GatewayConnection:
    """
    The single MySQL connection shared by every request.

    Created once at startup and never pooled or re-created. Losing it leaves
    the gateway answering "Connection unavailable" until it is restarted.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.state = ConnectionState.DISCONNECTED
        self._engine: Optional[AsyncEngine] = None
        self._connection: Optional[AsyncConnection] = None
        self._driver = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def encoding(self) -> str:
        return charset_by_name(self.settings.MYSQL_CHARSET).encoding

    async def open(self) -> str:
        """Connect and return the server thread id of the connection."""
        self._engine = create_async_engine(
            self.settings.database_url(),
            isolation_level="AUTOCOMMIT",
            pool_size=1,
            max_overflow=0,
            connect_args={"conv": TEXT_CONVERSIONS},
        )
        self._connection = await self._engine.connect()

        # Statements go straight to the driver: only its column packets carry
        # the flag bits and origin names the protocol needs
        raw = await self._connection.get_raw_connection()
        self._driver = raw.driver_connection

        thread_id = await self._connection.scalar(text("SELECT CONNECTION_ID()"))
        self.state = ConnectionState.CONNECTED
        return str(thread_id)

    async def close(self):
        was_lost = self.state is ConnectionState.LOST
        self.state = ConnectionState.DISCONNECTED

        if self._connection is not None:
            if was_lost:
                await self._connection.invalidate()
            await self._connection.close()
            self._connection = None
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        self._driver = None

    async def execute(self, sql: str) -> ExecutionOutcome:
        """
        Run one statement and collect its single result set.

        Raises:
            ExecutionError: The server rejected the statement
            ConnectionUnavailableError: The connection is closed or was lost
        """
        if not self.is_connected:
            raise ConnectionUnavailableError()

        # The driver refuses new cursors once it has closed itself
        try:
            cursor_context = self._driver.cursor()
        except pymysql.err.MySQLError as error:
            self._mark_lost(error)
            raise ConnectionUnavailableError() from error

        async with cursor_context as cursor:
            try:
                await cursor.execute(sql)
            except pymysql.err.MySQLError as error:
                if is_disconnect(error):
                    self._mark_lost(error)
                    raise ConnectionUnavailableError() from error
                raise await self._execution_error(cursor, error, sql) from error

            columns = self._columns(cursor)
            rows = list(await cursor.fetchall()) if cursor.description else []

            return ExecutionOutcome(
                columns=columns,
                rows=rows,
                insert_id=cursor.lastrowid or 0,
                rows_affected=0 if cursor.description else max(cursor.rowcount, 0),
            )

    def _mark_lost(self, error: Exception):
        self.state = ConnectionState.LOST
        logger.error(f"Lost connection to MySQL: {error}")

    @staticmethod
    def _columns(cursor) -> List[NativeColumn]:
        if not cursor.description:
            return []

        # cursor.description drops the flags, the field packets keep them
        return [
            NativeColumn(
                name=_text(packet.name),
                type_code=packet.type_code,
                flags=packet.flags,
                table=_text(packet.table_name),
                org_table=_text(packet.org_table),
                db=_text(packet.db),
                org_name=_text(packet.org_name),
            )
            for packet in cursor._result.fields
        ]

    async def _execution_error(self, cursor, error, sql: str) -> ExecutionError:
        errno = error.args[0] if error.args else 0
        message = error.args[1] if len(error.args) > 1 else str(error)
        sqlstate = await self._read_sqlstate(cursor)
        return ExecutionError(message, errno, sqlstate, sql)

    @staticmethod
    async def _read_sqlstate(cursor) -> str:
        # The driver discards the SQLSTATE of the error packet; the server
        # still has it in the diagnostics area until the next statement.
        try:
            await cursor.execute(
                "GET DIAGNOSTICS CONDITION 1 @planetlocal_sqlstate = RETURNED_SQLSTATE"
            )
            await cursor.execute("SELECT @planetlocal_sqlstate")
            row = await cursor.fetchone()
        except pymysql.err.MySQLError as error:
            logger.warning(f"Could not read SQLSTATE: {error}")
            return DEFAULT_SQLSTATE

        if not row or not row[0]:
            return DEFAULT_SQLSTATE
        return _text(row[0])
