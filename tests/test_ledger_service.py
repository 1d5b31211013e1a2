"""Ledger engine: balances move together with the transaction rows."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import func, select

from saldo.errors import DomainError, InternalError, NotFoundError, ValidationError
from saldo.models import Source, Transaction
from saldo.models.transaction_type import TypeKind
from saldo.services.ledger import LedgerService, balance_effects, net_deltas
from saldo.services.recalculator import recalculate_balance
from saldo.services.scope import OwnerScope


def _transaction_count(session_factory) -> int:
    with session_factory() as session:
        return session.exec(select(func.count()).select_from(Transaction)).one()


# =============================================================================
# Pure effect helpers
# =============================================================================


def test_balance_effects_by_kind():
    assert [e.delta for e in balance_effects(TypeKind.INCOME, 10.0, 1, None)] == [10.0]
    assert [e.delta for e in balance_effects(TypeKind.EXPENSE, 10.0, 1, None)] == [-10.0]
    transfer = balance_effects(TypeKind.SAVING, 10.0, 1, 2)
    assert [(e.source_id, e.delta) for e in transfer] == [(1, -10.0), (2, 10.0)]
    assert balance_effects(TypeKind.NONE, 10.0, 1, None) == []


def test_transfer_effect_without_target_is_rejected():
    with pytest.raises(DomainError) as excinfo:
        balance_effects(TypeKind.TRANSFER, 10.0, 1, None)
    assert excinfo.value.code == "TARGET_SOURCE_REQUIRED"


def test_net_deltas_drops_sources_that_cancel_out():
    effects = balance_effects(TypeKind.INCOME, 5.0, 1, None) + [
        e.reversed() for e in balance_effects(TypeKind.INCOME, 5.0, 1, None)
    ]
    effects += balance_effects(TypeKind.EXPENSE, 3.0, 2, None)
    assert net_deltas(effects) == {2: -3.0}


# =============================================================================
# Create
# =============================================================================


def test_income_and_expense_adjust_balance(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=100.0)

    ledger.create_transaction(
        user.id,
        command(
            amount=250,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )
    ledger.create_transaction(
        user.id,
        command(
            amount="40.5",
            type_id=kinds["expense"],
            source_id=wallet.id,
            category_id=default_categories["Food & Beverages"],
        ),
    )

    assert balance_of(wallet.id) == pytest.approx(309.5)


def test_create_returns_transaction_with_relations(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")
    created = ledger.create_transaction(
        user.id,
        command(
            description="  Lunch  ",
            amount=12,
            type_id=str(kinds["expense"]),
            source_id=str(wallet.id),
            category_id=default_categories["Food & Beverages"],
            occurred_at="2024-03-02",
        ),
    )

    assert created.id is not None
    assert created.description == "Lunch"
    assert created.occurred_at == datetime(2024, 3, 2)
    assert created.type.kind == TypeKind.EXPENSE
    assert created.category.name == "Food & Beverages"
    assert created.source.balance == pytest.approx(-12.0)
    assert created.target_source_id is None


def test_transfer_is_one_row_and_symmetric(
    ledger, user, source_factory, kinds, balance_of, session_factory, command
):
    wallet = source_factory("Wallet", initial_amount=500.0)
    savings = source_factory("Savings", initial_amount=0.0)

    transfer = ledger.create_transaction(
        user.id,
        command(
            amount=200,
            type_id=kinds["transfer"],
            source_id=wallet.id,
            target_source_id=savings.id,
        ),
    )

    assert _transaction_count(session_factory) == 1
    assert transfer.category_id is None
    assert transfer.target_source_id == savings.id
    assert balance_of(wallet.id) == pytest.approx(300.0)
    assert balance_of(savings.id) == pytest.approx(200.0)
    assert balance_of(wallet.id) + balance_of(savings.id) == pytest.approx(500.0)


def test_transfer_ignores_supplied_category(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")
    savings = source_factory("Savings")

    saving = ledger.create_transaction(
        user.id,
        command(
            amount=10,
            type_id=kinds["saving"],
            source_id=wallet.id,
            target_source_id=savings.id,
            category_id=default_categories["Salary"],
        ),
    )

    assert saving.category_id is None


def test_self_transfer_is_rejected(
    ledger, user, source_factory, kinds, balance_of, session_factory, command
):
    wallet = source_factory("Wallet", initial_amount=50.0)

    with pytest.raises(DomainError) as excinfo:
        ledger.create_transaction(
            user.id,
            command(
                amount=10,
                type_id=kinds["transfer"],
                source_id=wallet.id,
                target_source_id=wallet.id,
            ),
        )

    assert excinfo.value.code == "SELF_TRANSFER"
    assert _transaction_count(session_factory) == 0
    assert balance_of(wallet.id) == pytest.approx(50.0)


def test_transfer_requires_target(ledger, user, source_factory, kinds, command):
    wallet = source_factory("Wallet")

    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id, command(amount=10, type_id=kinds["transfer"], source_id=wallet.id)
        )

    assert excinfo.value.code == "TARGET_SOURCE_REQUIRED"


def test_expense_requires_category(ledger, user, source_factory, kinds, command):
    wallet = source_factory("Wallet")

    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id, command(amount=10, type_id=kinds["expense"], source_id=wallet.id)
        )

    assert excinfo.value.code == "CATEGORY_REQUIRED"


def test_kind_rules_are_reported_with_shape_errors(
    ledger, user, source_factory, kinds, session_factory, command
):
    wallet = source_factory("Wallet")

    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id,
            command(description="", amount=5, type_id=kinds["transfer"], source_id=wallet.id),
        )

    assert excinfo.value.code == "VALIDATION_ERROR"
    assert [d.field for d in excinfo.value.details] == ["description", "target_source_id"]
    assert _transaction_count(session_factory) == 0


def test_self_transfer_is_listed_with_other_field_errors(
    ledger, user, source_factory, kinds, command
):
    wallet = source_factory("Wallet")

    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id,
            command(
                amount="abc",
                type_id=kinds["transfer"],
                source_id=wallet.id,
                target_source_id=wallet.id,
            ),
        )

    assert {d.field for d in excinfo.value.details} == {"amount", "target_source_id"}


def test_missing_category_is_listed_with_other_field_errors(
    ledger, user, source_factory, kinds, command
):
    wallet = source_factory("Wallet")

    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id, command(amount=0, type_id=kinds["expense"], source_id=wallet.id)
        )

    assert excinfo.value.code == "VALIDATION_ERROR"
    assert {d.field for d in excinfo.value.details} == {"amount", "category_id"}


def test_category_must_match_type(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")

    with pytest.raises(DomainError) as excinfo:
        ledger.create_transaction(
            user.id,
            command(
                amount=10,
                type_id=kinds["expense"],
                source_id=wallet.id,
                category_id=default_categories["Salary"],
            ),
        )

    assert excinfo.value.code == "CATEGORY_TYPE_MISMATCH"


def test_validation_reports_every_field(ledger, user, session_factory, command):
    with pytest.raises(ValidationError) as excinfo:
        ledger.create_transaction(
            user.id, command(description="  ", amount=-5, occurred_at="not-a-date")
        )

    fields = {detail.field for detail in excinfo.value.details}
    assert fields == {"description", "amount", "type_id", "source_id", "date"}
    assert _transaction_count(session_factory) == 0


def test_missing_references_are_reported(ledger, user, kinds, command):
    with pytest.raises(NotFoundError) as excinfo:
        ledger.create_transaction(
            user.id, command(amount=5, type_id=9999, source_id=9999, category_id=1)
        )

    assert excinfo.value.code == "REFERENCE_NOT_FOUND"
    assert {d.field for d in excinfo.value.details} == {"type_id", "source_id"}


def test_user_defined_type_has_no_balance_effect(
    ledger, user, source_factory, type_service, category_service, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=20.0)
    custom = type_service.create_type(user.id, "Reimbursable")
    category = category_service.create_category(user.id, "Work trips", custom.id)

    created = ledger.create_transaction(
        user.id,
        command(amount=99, type_id=custom.id, source_id=wallet.id, category_id=category.id),
    )

    assert created.type.kind == TypeKind.NONE
    assert balance_of(wallet.id) == pytest.approx(20.0)


# =============================================================================
# Update
# =============================================================================


def test_update_income_to_expense_reverses_old_effect(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=0.0)
    created = ledger.create_transaction(
        user.id,
        command(
            amount=100,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )
    assert balance_of(wallet.id) == pytest.approx(100.0)

    ledger.update_transaction(
        user.id,
        created.id,
        command(
            amount=30,
            type_id=kinds["expense"],
            source_id=wallet.id,
            category_id=default_categories["Transportation"],
        ),
    )

    assert balance_of(wallet.id) == pytest.approx(-30.0)


def test_update_moving_source_moves_the_effect(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet")
    bank = source_factory("Bank")
    created = ledger.create_transaction(
        user.id,
        command(
            amount=50,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Bonus"],
        ),
    )

    updated = ledger.update_transaction(
        user.id,
        created.id,
        command(
            amount=50,
            type_id=kinds["income"],
            source_id=bank.id,
            category_id=default_categories["Bonus"],
        ),
    )

    assert updated.source_id == bank.id
    assert balance_of(wallet.id) == pytest.approx(0.0)
    assert balance_of(bank.id) == pytest.approx(50.0)


def test_update_expense_to_transfer_clears_category(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=100.0)
    savings = source_factory("Savings", initial_amount=0.0)
    created = ledger.create_transaction(
        user.id,
        command(
            amount=40,
            type_id=kinds["expense"],
            source_id=wallet.id,
            category_id=default_categories["Entertainment & Leisure"],
        ),
    )

    updated = ledger.update_transaction(
        user.id,
        created.id,
        command(
            amount=40,
            type_id=kinds["transfer"],
            source_id=wallet.id,
            target_source_id=savings.id,
            category_id=default_categories["Entertainment & Leisure"],
        ),
    )

    assert updated.category_id is None
    assert updated.target_source_id == savings.id
    assert balance_of(wallet.id) == pytest.approx(60.0)
    assert balance_of(savings.id) == pytest.approx(40.0)


def test_update_transfer_to_expense_clears_target(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=100.0)
    savings = source_factory("Savings", initial_amount=0.0)
    created = ledger.create_transaction(
        user.id,
        command(
            amount=25,
            type_id=kinds["saving"],
            source_id=wallet.id,
            target_source_id=savings.id,
        ),
    )

    updated = ledger.update_transaction(
        user.id,
        created.id,
        command(
            amount=25,
            type_id=kinds["expense"],
            source_id=wallet.id,
            target_source_id=savings.id,
            category_id=default_categories["Food & Beverages"],
        ),
    )

    assert updated.target_source_id is None
    assert updated.target_source is None
    assert balance_of(wallet.id) == pytest.approx(75.0)
    assert balance_of(savings.id) == pytest.approx(0.0)


def test_update_without_date_keeps_stored_date(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")
    created = ledger.create_transaction(
        user.id,
        command(
            amount=5,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
            occurred_at="2024-01-15T09:30:00",
        ),
    )

    updated = ledger.update_transaction(
        user.id,
        created.id,
        command(
            description="Renamed",
            amount=6,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )

    assert updated.description == "Renamed"
    assert updated.occurred_at == datetime(2024, 1, 15, 9, 30)


def test_offset_dates_are_stored_as_naive_utc(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")

    created = ledger.create_transaction(
        user.id,
        command(
            amount=5,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
            occurred_at="2024-03-01T10:00:00+02:00",
        ),
    )

    assert created.occurred_at == datetime(2024, 3, 1, 8, 0)
    assert created.occurred_at.tzinfo is None


def test_default_date_is_current_utc_time(
    ledger, user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    created = ledger.create_transaction(
        user.id,
        command(
            amount=5,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )

    after = datetime.now(timezone.utc).replace(tzinfo=None)
    assert created.occurred_at.tzinfo is None
    assert before <= created.occurred_at <= after


def test_update_unknown_transaction(ledger, user, source_factory, kinds, default_categories, command):
    wallet = source_factory("Wallet")

    with pytest.raises(NotFoundError) as excinfo:
        ledger.update_transaction(
            user.id,
            12345,
            command(
                amount=5,
                type_id=kinds["income"],
                source_id=wallet.id,
                category_id=default_categories["Salary"],
            ),
        )

    assert excinfo.value.code == "TRANSACTION_NOT_FOUND"


# =============================================================================
# Delete
# =============================================================================


def test_delete_reverses_transfer(
    ledger, user, source_factory, kinds, balance_of, session_factory, command
):
    wallet = source_factory("Wallet", initial_amount=80.0)
    savings = source_factory("Savings", initial_amount=20.0)
    created = ledger.create_transaction(
        user.id,
        command(amount=30, type_id=kinds["transfer"], source_id=wallet.id, target_source_id=savings.id),
    )

    ledger.delete_transaction(user.id, created.id)

    assert _transaction_count(session_factory) == 0
    assert balance_of(wallet.id) == pytest.approx(80.0)
    assert balance_of(savings.id) == pytest.approx(20.0)


def test_delete_unknown_transaction(ledger, user):
    with pytest.raises(NotFoundError):
        ledger.delete_transaction(user.id, 777)


# =============================================================================
# Atomicity
# =============================================================================


def _failing_adjust(*_args, **_kwargs):
    raise OperationalError("UPDATE source SET balance", {}, Exception("disk I/O error"))


def test_failed_balance_write_rolls_back_create(
    ledger, user, source_factory, kinds, default_categories, balance_of, session_factory,
    command, monkeypatch,
):
    wallet = source_factory("Wallet", initial_amount=10.0)
    monkeypatch.setattr(LedgerService, "_adjust_balance", _failing_adjust)

    with pytest.raises(InternalError):
        ledger.create_transaction(
            user.id,
            command(
                amount=5,
                type_id=kinds["income"],
                source_id=wallet.id,
                category_id=default_categories["Salary"],
            ),
        )

    assert _transaction_count(session_factory) == 0
    assert balance_of(wallet.id) == pytest.approx(10.0)


def test_failed_balance_write_rolls_back_update(
    ledger, user, source_factory, kinds, default_categories, balance_of, command, monkeypatch
):
    wallet = source_factory("Wallet")
    created = ledger.create_transaction(
        user.id,
        command(
            amount=70,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )
    monkeypatch.setattr(LedgerService, "_adjust_balance", _failing_adjust)

    with pytest.raises(InternalError):
        ledger.update_transaction(
            user.id,
            created.id,
            command(
                amount=10,
                type_id=kinds["expense"],
                source_id=wallet.id,
                category_id=default_categories["Transportation"],
            ),
        )

    monkeypatch.undo()
    stored = ledger.get_transaction(user.id, created.id)
    assert stored.amount == pytest.approx(70.0)
    assert stored.type.kind == TypeKind.INCOME
    assert balance_of(wallet.id) == pytest.approx(70.0)


def test_failed_target_write_rolls_back_transfer(
    ledger, user, source_factory, kinds, balance_of, session_factory, command, monkeypatch
):
    wallet = source_factory("Wallet", initial_amount=100.0)
    savings = source_factory("Savings", initial_amount=0.0)
    real_adjust = LedgerService._adjust_balance
    written: list[int] = []

    def adjust_then_fail(self, session, source_id, delta):
        written.append(source_id)
        if len(written) == 2:
            _failing_adjust()
        real_adjust(self, session, source_id, delta)

    monkeypatch.setattr(LedgerService, "_adjust_balance", adjust_then_fail)

    with pytest.raises(InternalError):
        ledger.create_transaction(
            user.id,
            command(
                amount=40,
                type_id=kinds["transfer"],
                source_id=wallet.id,
                target_source_id=savings.id,
            ),
        )

    assert written == [wallet.id, savings.id]
    assert _transaction_count(session_factory) == 0
    assert balance_of(wallet.id) == pytest.approx(100.0)
    assert balance_of(savings.id) == pytest.approx(0.0)


def test_sources_are_locked_in_id_order(ledger, user, source_factory, kinds, command, monkeypatch):
    first = source_factory("First")
    second = source_factory("Second")
    third = source_factory("Third")
    real_source = OwnerScope.source
    locked: list[int] = []

    def recording_source(self, source_id):
        locked.append(source_id)
        return real_source(self, source_id)

    monkeypatch.setattr(OwnerScope, "source", recording_source)

    created = ledger.create_transaction(
        user.id,
        command(amount=5, type_id=kinds["transfer"], source_id=second.id, target_source_id=first.id),
    )
    assert locked == [first.id, second.id]

    locked.clear()
    ledger.update_transaction(
        user.id,
        created.id,
        command(amount=5, type_id=kinds["transfer"], source_id=third.id, target_source_id=second.id),
    )
    assert locked == [first.id, second.id, third.id]


# =============================================================================
# Insufficient-funds policy
# =============================================================================


def test_negative_balance_allowed_by_default(
    ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=5.0)
    ledger.create_transaction(
        user.id,
        command(
            amount=20,
            type_id=kinds["expense"],
            source_id=wallet.id,
            category_id=default_categories["Transportation"],
        ),
    )
    assert balance_of(wallet.id) == pytest.approx(-15.0)


def test_strict_policy_rejects_overdraft(
    strict_ledger, user, source_factory, kinds, balance_of, session_factory, command
):
    wallet = source_factory("Wallet", initial_amount=20.0)
    savings = source_factory("Savings")

    with pytest.raises(DomainError) as excinfo:
        strict_ledger.create_transaction(
            user.id,
            command(amount=50, type_id=kinds["transfer"], source_id=wallet.id, target_source_id=savings.id),
        )

    assert excinfo.value.code == "INSUFFICIENT_FUNDS"
    assert _transaction_count(session_factory) == 0
    assert balance_of(wallet.id) == pytest.approx(20.0)
    assert balance_of(savings.id) == pytest.approx(0.0)


def test_strict_policy_allows_covered_debit(
    strict_ledger, user, source_factory, kinds, default_categories, balance_of, command
):
    wallet = source_factory("Wallet", initial_amount=20.0)
    strict_ledger.create_transaction(
        user.id,
        command(
            amount=20,
            type_id=kinds["expense"],
            source_id=wallet.id,
            category_id=default_categories["Food & Beverages"],
        ),
    )
    assert balance_of(wallet.id) == pytest.approx(0.0)


# =============================================================================
# Ownership
# =============================================================================


def test_other_users_source_is_not_usable(
    ledger, user, other_user, source_factory, kinds, default_categories, command
):
    foreign = source_factory("Their wallet", owner=other_user)

    with pytest.raises(NotFoundError) as excinfo:
        ledger.create_transaction(
            user.id,
            command(
                amount=5,
                type_id=kinds["income"],
                source_id=foreign.id,
                category_id=default_categories["Salary"],
            ),
        )

    assert [d.field for d in excinfo.value.details] == ["source_id"]


def test_other_users_transaction_is_invisible(
    ledger, user, other_user, source_factory, kinds, default_categories, command
):
    wallet = source_factory("Wallet")
    created = ledger.create_transaction(
        user.id,
        command(
            amount=5,
            type_id=kinds["income"],
            source_id=wallet.id,
            category_id=default_categories["Salary"],
        ),
    )

    with pytest.raises(NotFoundError):
        ledger.get_transaction(other_user.id, created.id)
    with pytest.raises(NotFoundError):
        ledger.delete_transaction(other_user.id, created.id)


# =============================================================================
# Balance equivalence
# =============================================================================


def test_stored_balance_matches_recalculation(
    ledger, user, source_factory, kinds, default_categories, session_factory, command
):
    wallet = source_factory("Wallet", initial_amount=1000.0)
    savings = source_factory("Savings", initial_amount=50.0)

    salary = ledger.create_transaction(
        user.id,
        command(amount=300, type_id=kinds["income"], source_id=wallet.id,
                category_id=default_categories["Salary"]),
    )
    ledger.create_transaction(
        user.id,
        command(amount=45.25, type_id=kinds["expense"], source_id=wallet.id,
                category_id=default_categories["Food & Beverages"]),
    )
    moved = ledger.create_transaction(
        user.id,
        command(amount=200, type_id=kinds["saving"], source_id=wallet.id,
                target_source_id=savings.id),
    )
    ledger.update_transaction(
        user.id,
        moved.id,
        command(amount=120, type_id=kinds["transfer"], source_id=savings.id,
                target_source_id=wallet.id),
    )
    ledger.delete_transaction(user.id, salary.id)

    with session_factory() as session:
        for source_id in (wallet.id, savings.id):
            stored = session.get(Source, source_id)
            assert stored.balance == pytest.approx(
                recalculate_balance(session, source_id, stored.initial_amount)
            )
