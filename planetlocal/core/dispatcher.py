import asyncio
import logging
from typing import List, Sequence

from fastapi import Request

from planetlocal.core.database import ExecutionOutcome, NativeColumn
from planetlocal.core.encoding import encode_rows
from planetlocal.core.errors import (
    ConnectionUnavailableError,
    ExecutionError,
    QueryError,
    TransactionInProgressError,
)
from planetlocal.core.schemas import ColumnDescriptor, QueryResult
from planetlocal.core.transactions import IDLE, guard, settle
from planetlocal.core.types import extract_type

logger = logging.getLogger(__name__)


def extract_fields(columns: Sequence[NativeColumn]) -> List[ColumnDescriptor]:
    return [
        ColumnDescriptor(
            name=column.name,
            type=extract_type(column.type_code, column.flags),
            table=column.table,
            org_table=column.org_table,
            database=column.db,
            org_name=column.org_name,
        )
        for column in columns
    ]


def build_result(outcome: ExecutionOutcome, encoding: str = "utf-8") -> QueryResult:
    fields = extract_fields(outcome.columns)
    return QueryResult(
        fields=fields,
        rows=encode_rows(outcome.rows, fields, encoding),
        insert_id=outcome.insert_id,
        rows_affected=outcome.rows_affected,
    )


class QueryDispatcher:
    """
    Run SQL from the router against the shared connection.

    Dispatches are serialized FIFO behind one lock, the same order the
    connection would process them in, and the transaction check stays
    adjacent to the execution it guards.
    """

    def __init__(self, connection):
        self.connection = connection
        self.transaction_state = IDLE
        self._lock = asyncio.Lock()

    async def dispatch(self, sql: str) -> QueryResult:
        """
        Execute one statement.

        Returns:
            QueryResult with the translated fields and transport rows

        Raises:
            TransactionInProgressError: BEGIN inside an open transaction
            ExecutionError: The server rejected the statement
            ConnectionUnavailableError: The shared connection is gone
        """
        async with self._lock:
            try:
                proposed = guard(sql, self.transaction_state)
            except TransactionInProgressError:
                logger.warning(f"Rejected nested BEGIN: {sql!r}")
                raise

            try:
                if not self.connection.is_connected:
                    raise ConnectionUnavailableError()
                outcome = await self.connection.execute(sql)
            except QueryError as error:
                self.transaction_state = settle(
                    self.transaction_state, proposed, succeeded=False
                )
                if isinstance(error, ExecutionError):
                    logger.error(f"Query failed: {error.native_message} | Sql: {sql}")
                raise

            self.transaction_state = settle(
                self.transaction_state, proposed, succeeded=True
            )

        return build_result(outcome, self.connection.encoding)


# The one dispatcher of the running app, shared by every request
async def get_dispatcher(request: Request) -> QueryDispatcher:
    return request.app.state.dispatcher
