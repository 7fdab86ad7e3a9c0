"""
tests/unit/test_validation_schemas.py — Unit tests for the marshmallow schemas
                                         and the load_* boundary functions.

What this file proves:
  - Every schema accepts valid input and builds the matching record
  - Every schema rejects invalid input with the correct ValidationError
  - Error codes raised as messages match the registered constants in errors.py
  - The load_* functions turn ValidationError into the matching EngineError,
    reporting the first failing field
  - Membership rules are NOT checked here; they belong in balance_service

Unit test constraints:
  - No persistence, no HTTP context. Schemas inherit from marshmallow.Schema
    directly and need no application.
"""

from __future__ import annotations

import pytest
from marshmallow import ValidationError

from ledger.engine.errors import (
    DuplicateMemberError,
    EmptyParticipantsError,
    EngineError,
    ErrorCode,
    InvalidAmountError,
    InvalidMemberError,
    SelfSettlementError,
    SplitSumMismatchError,
    from_validation_error,
)
from ledger.engine.models.expense import Expense, Split
from ledger.engine.models.settlement import Settlement, SettlementStatus, SimplifiedDebt
from ledger.engine.schemas.expense_schema import (
    EqualSplitRequestSchema,
    ExpenseSchema,
    SplitSchema,
    load_equal_split_request,
    load_expense,
    load_expenses,
)
from ledger.engine.schemas.settlement_schema import (
    BalanceSchema,
    SettlementSchema,
    SimplifiedDebtSchema,
    dump_debts,
    load_settlements,
)


def _expense_payload(**overrides) -> dict:
    payload = {
        "payer": 1,
        "amount": 100,
        "splits": [{"member": 1, "owed": 50}, {"member": 2, "owed": 50}],
    }
    payload.update(overrides)
    return payload


# ═══════════════════════════════════════════════════════════════════════════
# SplitSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitSchema:

    def _load(self, data: dict):
        return SplitSchema().load(data)

    def test_valid_payload_builds_split(self):
        assert self._load({"member": "alice", "owed": 33}) == Split("alice", 33)

    def test_zero_owed_allowed(self):
        assert self._load({"member": 3, "owed": 0}).owed == 0

    def test_negative_owed_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"member": 3, "owed": -1})
        assert exc.value.messages == {"owed": [ErrorCode.INVALID_AMOUNT]}

    @pytest.mark.parametrize("owed", [1.5, "10", True, None])
    def test_non_integer_owed_raises(self, owed):
        with pytest.raises(ValidationError) as exc:
            self._load({"member": 3, "owed": owed})
        assert "owed" in exc.value.messages

    @pytest.mark.parametrize("member", ["", "  ", True, 2.0, None, ["a"]])
    def test_invalid_member_raises(self, member):
        with pytest.raises(ValidationError) as exc:
            self._load({"member": member, "owed": 1})
        assert "member" in exc.value.messages

    def test_missing_member_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"owed": 1})
        assert "member" in exc.value.messages

    def test_unknown_columns_ignored(self):
        split = self._load({"id": 9, "expense_id": 4, "member": 1, "owed": 5})
        assert split == Split(1, 5)


# ═══════════════════════════════════════════════════════════════════════════
# ExpenseSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestExpenseSchema:

    def _load(self, data: dict):
        return ExpenseSchema().load(data)

    def test_valid_payload_builds_expense(self):
        expense = self._load(_expense_payload())

        assert isinstance(expense, Expense)
        assert expense.splits == (Split(1, 50), Split(2, 50))

    def test_zero_amount_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load(_expense_payload(amount=0))
        assert exc.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT]

    def test_float_amount_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load(_expense_payload(amount=100.0))
        assert "amount" in exc.value.messages

    def test_empty_splits_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load(_expense_payload(splits=[]))
        assert "splits" in exc.value.messages

    def test_duplicate_split_member_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load(_expense_payload(splits=[
                {"member": 1, "owed": 50},
                {"member": 1, "owed": 50},
            ]))
        assert exc.value.messages["splits"] == [ErrorCode.DUPLICATE_SPLIT_MEMBER]

    def test_split_sum_mismatch_raises_engine_error(self):
        """The sum rule is checked on the built record, not as a field error."""
        with pytest.raises(SplitSumMismatchError):
            self._load(_expense_payload(amount=101))

    def test_nested_split_error_reported_under_splits(self):
        with pytest.raises(ValidationError) as exc:
            self._load(_expense_payload(splits=[{"member": 1, "owed": -5}]))
        assert exc.value.messages == {"splits": {0: {"owed": [ErrorCode.INVALID_AMOUNT]}}}


# ═══════════════════════════════════════════════════════════════════════════
# EqualSplitRequestSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestEqualSplitRequestSchema:

    def _load(self, data: dict):
        return EqualSplitRequestSchema().load(data)

    def test_valid_payload(self):
        result = self._load({"payer": 1, "amount": 100, "participants": [1, 2, 3]})
        assert result == {
            "payer": 1,
            "amount": 100,
            "participants": [1, 2, 3],
            "payer_first": False,
        }

    def test_empty_participants_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"payer": 1, "amount": 100, "participants": []})
        assert exc.value.messages["participants"] == [ErrorCode.EMPTY_PARTICIPANTS]

    def test_duplicate_participants_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"payer": 1, "amount": 100, "participants": [1, 2, 1]})
        assert exc.value.messages["participants"] == [ErrorCode.DUPLICATE_PARTICIPANT]

    def test_unknown_field_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"payer": 1, "amount": 100, "participants": [1], "mode": "x"})
        assert "mode" in exc.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# SettlementSchema / SimplifiedDebtSchema / BalanceSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestSettlementSchema:

    def _load(self, data: dict):
        return SettlementSchema().load(data)

    def test_valid_payload_defaults_to_completed(self):
        settlement = self._load({"payer": 2, "payee": 1, "amount": 3300})
        assert settlement == Settlement(2, 1, 3300, SettlementStatus.COMPLETED)

    def test_status_by_value(self):
        settlement = self._load({"payer": 2, "payee": 1, "amount": 5, "status": "cancelled"})
        assert settlement.status is SettlementStatus.CANCELLED

    def test_unknown_status_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"payer": 2, "payee": 1, "amount": 5, "status": "refunded"})
        assert exc.value.messages["status"] == [ErrorCode.INVALID_SETTLEMENT_STATUS]

    def test_self_settlement_raises_engine_error(self):
        with pytest.raises(SelfSettlementError):
            self._load({"payer": 1, "payee": 1, "amount": 5})

    def test_negative_amount_raises(self):
        with pytest.raises(ValidationError) as exc:
            self._load({"payer": 2, "payee": 1, "amount": -5})
        assert exc.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT]


class TestSimplifiedDebtSchema:

    def test_dump_uses_from_and_to_keys(self):
        data = SimplifiedDebtSchema().dump(SimplifiedDebt("B", "A", 33))
        assert data == {"from": "B", "to": "A", "amount": 33}

    def test_load_builds_record(self):
        debt = SimplifiedDebtSchema().load({"from": "B", "to": "A", "amount": 33})
        assert debt == SimplifiedDebt("B", "A", 33)

    def test_dump_debts_many(self):
        debts = [SimplifiedDebt(2, 1, 5), SimplifiedDebt(3, 1, 7)]
        assert dump_debts(debts) == [
            {"from": 2, "to": 1, "amount": 5},
            {"from": 3, "to": 1, "amount": 7},
        ]


def test_balance_schema_dump():
    row = BalanceSchema().dump({"member": 1, "name": "alice", "balance": -250})
    assert row == {"member": 1, "name": "alice", "balance": -250}


# ═══════════════════════════════════════════════════════════════════════════
# load_* boundary functions
# ═══════════════════════════════════════════════════════════════════════════

class TestLoaders:

    def test_load_expense(self):
        assert load_expense(_expense_payload()).amount == 100

    def test_load_expenses_many(self):
        expenses = load_expenses([_expense_payload(), _expense_payload(payer=2)])
        assert [e.payer for e in expenses] == [1, 2]

    def test_load_expenses_accepts_generator(self):
        expenses = load_expenses(p for p in [_expense_payload()])
        assert len(expenses) == 1

    def test_invalid_amount_maps_to_typed_error(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            load_expenses([_expense_payload(amount=0)])

        err = exc_info.value
        assert err.code == ErrorCode.INVALID_AMOUNT
        assert err.http_status == 400
        assert err.field == "0.amount"

    def test_nested_field_path_reported(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            load_expense(_expense_payload(splits=[{"member": 1, "owed": -1}]))
        assert exc_info.value.field == "splits.0.owed"

    def test_missing_field_maps_to_missing_field(self):
        payload = _expense_payload()
        del payload["payer"]

        with pytest.raises(EngineError) as exc_info:
            load_expense(payload)

        err = exc_info.value
        assert err.code == ErrorCode.MISSING_FIELD
        assert err.field == "payer"

    def test_type_error_maps_to_invalid_field(self):
        with pytest.raises(EngineError) as exc_info:
            load_expense(_expense_payload(amount="lots"))
        assert exc_info.value.code == ErrorCode.INVALID_FIELD

    def test_blank_member_maps_to_invalid_member(self):
        with pytest.raises(InvalidMemberError):
            load_expense(_expense_payload(payer="  "))

    def test_duplicate_split_member_maps_to_typed_error(self):
        with pytest.raises(DuplicateMemberError) as exc_info:
            load_expense(_expense_payload(splits=[
                {"member": 1, "owed": 50},
                {"member": 1, "owed": 50},
            ]))
        assert exc_info.value.field == "splits"

    def test_split_sum_mismatch_passes_through(self):
        with pytest.raises(SplitSumMismatchError):
            load_expenses([_expense_payload(amount=99)])

    def test_empty_participants_maps_to_typed_error(self):
        with pytest.raises(EmptyParticipantsError) as exc_info:
            load_equal_split_request({"payer": 1, "amount": 10, "participants": []})
        assert exc_info.value.field == "participants"

    def test_load_settlements(self):
        settlements = load_settlements([
            {"payer": 2, "payee": 1, "amount": 10},
            {"payer": 3, "payee": 1, "amount": 4, "status": "pending"},
        ])
        assert [s.status for s in settlements] == [
            SettlementStatus.COMPLETED,
            SettlementStatus.PENDING,
        ]

    def test_load_settlements_bad_status(self):
        with pytest.raises(EngineError) as exc_info:
            load_settlements([{"payer": 2, "payee": 1, "amount": 10, "status": "nope"}])

        err = exc_info.value
        assert err.code == ErrorCode.INVALID_SETTLEMENT_STATUS
        assert err.http_status == 400
        assert err.field == "0.status"


def test_from_validation_error_schema_level_message():
    err = from_validation_error(ValidationError({"_schema": ["Something is off."]}))
    assert err.code == ErrorCode.INVALID_FIELD
    assert err.field is None
    assert err.message == "Something is off."
