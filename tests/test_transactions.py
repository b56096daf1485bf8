import pytest

from planetlocal.core.errors import TransactionInProgressError
from planetlocal.core.transactions import IDLE, OPEN, guard, settle


def test_begin_opens_transaction():
    assert guard("BEGIN", IDLE) == OPEN


def test_nested_begin_is_rejected():
    """BEGIN -> BEGIN fails on the second call and leaves the state alone"""
    state = guard("BEGIN", IDLE)

    with pytest.raises(TransactionInProgressError) as exc:
        guard("BEGIN", state)

    assert exc.value.message == "Transaction in progress!"
    assert state == OPEN


def test_begin_commit_begin():
    state = IDLE
    for sql in ("BEGIN", "COMMIT", "BEGIN", "ROLLBACK", "BEGIN"):
        state = guard(sql, state)
    assert state == OPEN


@pytest.mark.parametrize("sql", ["COMMIT", "ROLLBACK"])
def test_commit_and_rollback_always_clear(sql):
    assert guard(sql, OPEN) == IDLE
    # no prior BEGIN: still fine
    assert guard(sql, IDLE) == IDLE


@pytest.mark.parametrize("sql", ["SELECT 1", "begin", " BEGIN", "BEGIN;", "START TRANSACTION"])
def test_other_statements_pass_through(sql):
    """Only the exact upper-case statements are recognised"""
    assert guard(sql, IDLE) == IDLE
    assert guard(sql, OPEN) == OPEN


def test_settle_adopts_proposed_state_on_success():
    assert settle(IDLE, OPEN, succeeded=True) == OPEN
    assert settle(OPEN, IDLE, succeeded=True) == IDLE


def test_failed_begin_does_not_open():
    assert settle(IDLE, OPEN, succeeded=False) == IDLE


def test_failed_commit_still_clears():
    assert settle(OPEN, IDLE, succeeded=False) == IDLE


def test_failed_statement_keeps_state():
    assert settle(OPEN, OPEN, succeeded=False) == OPEN
    assert settle(IDLE, IDLE, succeeded=False) == IDLE
