"""
schemas/expense_schema.py — Marshmallow schemas for expense records.

Validation responsibility:
  - This file:
      - Field types (int-only amounts, member identifiers)
      - INVALID_AMOUNT for non-positive amounts / negative split shares
      - DUPLICATE_SPLIT_MEMBER: same member twice in one expense
      - EMPTY_PARTICIPANTS / DUPLICATE_PARTICIPANT for equal-split requests
      - SPLIT_SUM_MISMATCH, via Expense.check_split_sum() after loading
  - services/balance_service.py:
      - PAYER_NOT_MEMBER / SPLIT_MEMBER_NOT_MEMBER: requires the group's
        membership, which a single record does not carry

The load_* functions are the boundary with the persistence and API layers:
they accept plain dicts and return records, or raise an EngineError.

IMPORTANT: Inherits from marshmallow.Schema directly. No app context needed.
"""

from __future__ import annotations

from typing import Iterable

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from ledger.engine.errors import ErrorCode, from_validation_error
from ledger.engine.models.expense import Expense, Split
from ledger.engine.schemas.fields import MemberField, MinorUnits


# ── Shared amount validator ────────────────────────────────────────────────
#
# Raises the registered code as the message; from_validation_error() maps it
# onto InvalidAmountError. Values are never rounded or clamped.
# ──────────────────────────────────────────────────────────────────────────

def _validate_positive_amount(value: int) -> None:
    if value <= 0:
        raise ValidationError(ErrorCode.INVALID_AMOUNT)


def _validate_non_negative_amount(value: int) -> None:
    if value < 0:
        raise ValidationError(ErrorCode.INVALID_AMOUNT)


# ── Sub-schema: one entry in the `splits` array ───────────────────────────

class SplitSchema(Schema):
    """
    {"member": 3, "owed": 3333}

    A zero share is valid: the Equal-Split Allocator produces them whenever
    the amount is smaller than the number of participants.
    """

    class Meta:
        # Stored rows carry extra columns (id, expense_id, ...).
        unknown = EXCLUDE

    member = MemberField(required=True)
    owed = MinorUnits(required=True, validate=_validate_non_negative_amount)

    @post_load
    def make_split(self, data: dict, **kwargs) -> Split:
        return Split(member=data["member"], owed=data["owed"])


# ── Expense ────────────────────────────────────────────────────────────────

class ExpenseSchema(Schema):
    """
    {"payer": 1, "amount": 10000, "splits": [{"member": 1, "owed": 5000}, ...]}

    Checks in this schema:
      - DUPLICATE_SPLIT_MEMBER: same member appears twice in splits
      - SPLIT_SUM_MISMATCH: raised by the built Expense in post_load

    Checks NOT in this schema (belong in the balance service):
      - payer / split members belong to the group
    """

    class Meta:
        unknown = EXCLUDE

    payer = MemberField(required=True)
    amount = MinorUnits(required=True, validate=_validate_positive_amount)
    splits = fields.List(
        fields.Nested(SplitSchema),
        required=True,
        validate=validate.Length(min=1, error="An expense needs at least one split."),
    )

    @validates_schema
    def validate_unique_split_members(self, data: dict, **kwargs) -> None:
        """Nested splits are already Split records at this point."""
        seen: set = set()
        for split in data.get("splits") or []:
            if split.member in seen:
                raise ValidationError(
                    ErrorCode.DUPLICATE_SPLIT_MEMBER,
                    field_name="splits",
                )
            seen.add(split.member)

    @post_load
    def make_expense(self, data: dict, **kwargs) -> Expense:
        expense = Expense(
            payer=data["payer"],
            amount=data["amount"],
            splits=tuple(data["splits"]),
        )
        expense.check_split_sum()
        return expense


# ── Equal-split request ────────────────────────────────────────────────────

class EqualSplitRequestSchema(Schema):
    """
    Request to allocate a new expense equally, before it is persisted.

    {"payer": 1, "amount": 10000, "participants": [1, 2, 3], "payer_first": true}

    participants order decides who absorbs the remainder. With
    payer_first=true the payer is moved (or added) to the front.
    """

    payer = MemberField(required=True)
    amount = MinorUnits(required=True, validate=_validate_positive_amount)
    participants = fields.List(
        MemberField(),
        required=True,
        validate=validate.Length(min=1, error=ErrorCode.EMPTY_PARTICIPANTS),
    )
    payer_first = fields.Bool(load_default=False)

    @validates_schema
    def validate_unique_participants(self, data: dict, **kwargs) -> None:
        participants = data.get("participants") or []
        if len(set(participants)) != len(participants):
            raise ValidationError(
                ErrorCode.DUPLICATE_PARTICIPANT,
                field_name="participants",
            )


# ── Loaders ────────────────────────────────────────────────────────────────

def load_expense(payload: dict) -> Expense:
    try:
        return ExpenseSchema().load(payload)
    except ValidationError as err:
        raise from_validation_error(err) from err


def load_expenses(payloads: Iterable[dict]) -> list[Expense]:
    """Loads a group's expenses. The first invalid record aborts the load."""
    try:
        return ExpenseSchema(many=True).load(list(payloads))
    except ValidationError as err:
        raise from_validation_error(err) from err


def load_equal_split_request(payload: dict) -> dict:
    try:
        return EqualSplitRequestSchema().load(payload)
    except ValidationError as err:
        raise from_validation_error(err) from err
