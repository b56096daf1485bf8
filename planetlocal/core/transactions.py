"""
TRANSACTION GUARD - At most one open transaction on the shared connection

The state is a plain value owned by the dispatcher: it goes into guard() and
the next state comes back out. Statements are matched exactly (case-sensitive,
no trimming), the way the protocol clients send them.

Known limitation: every caller shares the one connection, so they also share
this state. One caller's BEGIN is visible to (and blocks) everybody else.
"""

from dataclasses import dataclass

from planetlocal.core.errors import TransactionInProgressError

BEGIN = "BEGIN"
COMMIT = "COMMIT"
ROLLBACK = "ROLLBACK"


@dataclass(frozen=True)
class TransactionState:
    in_transaction: bool = False


IDLE = TransactionState(in_transaction=False)
OPEN = TransactionState(in_transaction=True)


def guard(sql: str, state: TransactionState) -> TransactionState:
    """
    Check a statement against the current transaction state.

    Returns:
        The state to adopt once the statement has run

    Raises:
        TransactionInProgressError: BEGIN while a transaction is already open
    """
    if sql == BEGIN:
        if state.in_transaction:
            raise TransactionInProgressError()
        return OPEN

    if sql in (COMMIT, ROLLBACK):
        return IDLE

    return state


def settle(
    previous: TransactionState, proposed: TransactionState, succeeded: bool
) -> TransactionState:
    """
    Pick the state after execution.

    A failed statement never opens a transaction, but COMMIT and ROLLBACK
    clear the flag whether or not the server accepted them.
    """
    if succeeded:
        return proposed
    return TransactionState(
        in_transaction=previous.in_transaction and proposed.in_transaction
    )
