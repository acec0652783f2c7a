"""Tests for rate limiting, balance checks and deduction."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from recipe_importer.models.enums import SourceKind
from recipe_importer.models.import_log import ImportLog
from recipe_importer.models.tokens import TokenAccount, TokenTransaction
from recipe_importer.services.metering import (
    RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW,
    TOKEN_COSTS,
    MeteringGate,
)

USER = "user-abc"


def add_attempts(db, count: int, at: datetime, user_id: str = USER):
    db.add_all(ImportLog(user_id=user_id, import_type="url", status="success", created_at=at) for _ in range(count))
    db.commit()


def test_constants():
    """Test the exposed cost table and ceiling."""
    assert TOKEN_COSTS == {SourceKind.WEBSITE: 1, SourceKind.VIDEO: 2, SourceKind.IMAGE: 3, SourceKind.PDF: 3}
    assert RATE_LIMIT_MAX == 150
    assert RATE_LIMIT_WINDOW == timedelta(hours=24)


def test_rate_limit_empty_window(db):
    """Test a fresh account has the full quota."""
    now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    status = MeteringGate(db).check_rate_limit(USER, now=now)
    assert status.allowed is True
    assert status.remaining == 150
    assert status.reset_at == now + RATE_LIMIT_WINDOW


def test_rate_limit_boundary(db):
    """Test that 149 attempts are admitted and the 150th blocks the next one."""
    now = datetime.now(UTC)
    oldest = now - timedelta(hours=3)
    add_attempts(db, 1, oldest)
    add_attempts(db, 148, now - timedelta(hours=1))
    gate = MeteringGate(db)

    status = gate.check_rate_limit(USER, now=now)
    assert status.allowed is True
    assert status.remaining == 1

    add_attempts(db, 1, now - timedelta(minutes=1))
    status = gate.check_rate_limit(USER, now=now)
    assert status.allowed is False
    assert status.remaining == 0
    assert abs(status.reset_at - (oldest + RATE_LIMIT_WINDOW)) < timedelta(seconds=1)


def test_rate_limit_ignores_old_and_foreign_attempts(db):
    """Test that only this account's attempts inside the window count."""
    now = datetime.now(UTC)
    add_attempts(db, 150, now - timedelta(hours=25))
    add_attempts(db, 150, now - timedelta(hours=1), user_id="someone-else")
    status = MeteringGate(db).check_rate_limit(USER, now=now)
    assert status.allowed is True
    assert status.remaining == 150


def test_new_account_gets_signup_grant(db):
    """Test the first balance lookup creates the account with the grant."""
    gate = MeteringGate(db)
    assert gate.get_balance(USER) == 15
    assert gate.get_balance(USER) == 15

    transactions = db.query(TokenTransaction).filter(TokenTransaction.user_id == USER).all()
    assert len(transactions) == 1
    assert transactions[0].reason == "signup_bonus"
    assert transactions[0].type == "credit"


def test_balance_check(db):
    """Test balance below, equal to and above cost."""
    db.add(TokenAccount(user_id=USER, balance=2))
    db.commit()
    gate = MeteringGate(db)

    assert gate.check_balance(USER, SourceKind.WEBSITE).allowed is True
    assert gate.check_balance(USER, SourceKind.VIDEO).allowed is True
    status = gate.check_balance(USER, SourceKind.IMAGE)
    assert status.allowed is False
    assert status.required == 3
    assert status.available == 2


def test_deduct_to_zero(db):
    """Test that a balance equal to the cost ends at exactly zero."""
    db.add(TokenAccount(user_id=USER, balance=2))
    db.commit()

    new_balance = MeteringGate(db).deduct(USER, SourceKind.VIDEO, recipe_id=None)
    assert new_balance == 0
    assert db.get(TokenAccount, USER).balance == 0

    debit = db.query(TokenTransaction).filter(TokenTransaction.type == "debit").one()
    assert debit.amount == -2
    assert debit.reason == "import_video"
    assert debit.balance_after == 0


def test_deduct_failure_is_logged_not_raised(db):
    """Test that a failed debit returns None and leaves the balance unchanged."""
    db.add(TokenAccount(user_id=USER, balance=5))
    db.commit()
    gate = MeteringGate(db)

    with patch.object(db, "commit", side_effect=OperationalError("UPDATE", {}, Exception("locked"))):
        assert gate.deduct(USER, SourceKind.WEBSITE, recipe_id=None) is None

    db.expire_all()
    assert db.get(TokenAccount, USER).balance == 5
