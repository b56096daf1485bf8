from typing import Optional

from fastapi import status


# =========================
# Base
# =========================
class QueryError(Exception):
    """
    Terminal failure of a single request.

    Every subclass carries the HTTP status the router answers with and the
    message rendered as {"error": message}.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Query failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# =========================
# Client side
# =========================
class InvalidQueryError(QueryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid query"


# =========================
# Server side
# =========================
class TransactionInProgressError(QueryError):
    default_message = "Transaction in progress!"


class ConnectionUnavailableError(QueryError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Connection unavailable"


class ExecutionError(QueryError):
    """Native database failure, never retried."""

    def __init__(self, native_message: str, errno: int, sqlstate: str, sql: str):
        self.native_message = native_message
        self.errno = errno
        self.sqlstate = sqlstate
        self.sql = sql
        super().__init__(
            "\n".join(
                [
                    native_message,
                    f"(errno {errno})",
                    f"(sqlstate {sqlstate})",
                    f'Sql: "{sql}"',
                ]
            )
        )
