"""
schemas/settlement_schema.py — Marshmallow schemas for settlements, simplified
debts and balance rows.

Validation responsibility:
  - This file: field types, positive int amount, settlement status enum.
  - models/settlement.py: SELF_SETTLEMENT (payer == payee), raised when the
    record is built in post_load.
  - services/balance_service.py: SETTLEMENT_MEMBER_NOT_MEMBER, which needs
    the group's membership.

SimplifiedDebtSchema and BalanceSchema are mostly used for dumping results to
the display layer. Debts are serialised with the keys "from" / "to".

IMPORTANT: Inherits from marshmallow.Schema directly. No app context needed.
"""

from __future__ import annotations

from typing import Iterable

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load

from ledger.engine.errors import ErrorCode, from_validation_error
from ledger.engine.models.settlement import Settlement, SettlementStatus, SimplifiedDebt
from ledger.engine.schemas.fields import MemberField, MinorUnits


# ── Shared amount validator ────────────────────────────────────────────────
#
# Same rule as in expense_schema.py. Defined here rather than imported to keep
# each schema file self-contained.
# ──────────────────────────────────────────────────────────────────────────

def _validate_positive_amount(value: int) -> None:
    if value <= 0:
        raise ValidationError(ErrorCode.INVALID_AMOUNT)


# ── Settlement ─────────────────────────────────────────────────────────────

class SettlementSchema(Schema):
    """
    A recorded payment between two members.

    {"payer": 2, "payee": 1, "amount": 3300, "status": "completed"}

    status defaults to 'completed'. Only completed settlements move balances.
    """

    class Meta:
        unknown = EXCLUDE

    payer = MemberField(required=True)
    payee = MemberField(required=True)
    amount = MinorUnits(required=True, validate=_validate_positive_amount)
    status = fields.Enum(
        SettlementStatus,
        load_default=SettlementStatus.COMPLETED,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SETTLEMENT_STATUS},
    )

    @post_load
    def make_settlement(self, data: dict, **kwargs) -> Settlement:
        return Settlement(**data)


# ── Simplified debt ────────────────────────────────────────────────────────

class SimplifiedDebtSchema(Schema):
    """{"from": 2, "to": 1, "amount": 3300}"""

    from_member = MemberField(required=True, data_key="from")
    to_member = MemberField(required=True, data_key="to")
    amount = MinorUnits(required=True, validate=_validate_positive_amount)

    @post_load
    def make_debt(self, data: dict, **kwargs) -> SimplifiedDebt:
        return SimplifiedDebt(**data)


# ── Balance row (dump only) ────────────────────────────────────────────────

class BalanceSchema(Schema):
    """{"member": 1, "name": "alice", "balance": 6600}"""

    member = MemberField(required=True)
    name = fields.Str(required=True)
    balance = fields.Int(required=True, strict=True)


# ── Loaders ────────────────────────────────────────────────────────────────

def load_settlements(payloads: Iterable[dict]) -> list[Settlement]:
    """Loads a group's recorded settlements. The first invalid record aborts."""
    try:
        return SettlementSchema(many=True).load(list(payloads))
    except ValidationError as err:
        raise from_validation_error(err) from err


def dump_debts(debts: Iterable[SimplifiedDebt]) -> list[dict]:
    return SimplifiedDebtSchema(many=True).dump(list(debts))
