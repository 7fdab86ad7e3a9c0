"""
models/settlement.py — Settlement and SimplifiedDebt records.

Two different things that look alike:
  - Settlement: a real-world payment the persistence layer has recorded.
    Only `completed` settlements move balances (see compute_balances).
  - SimplifiedDebt: a suggestion computed by simplify_debts(). Never stored
    by the engine; recomputed on demand from the current expenses.

Both forbid a member paying themselves and require a positive int amount.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ledger.engine.errors import EngineError, ErrorCode, SelfSettlementError
from ledger.engine.models.expense import Member, validate_amount, validate_member


class SettlementStatus(str, enum.Enum):
    PENDING   = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Settlement:
    """`payer` has paid (or intends to pay) `payee` `amount` minor units."""

    payer: Member
    payee: Member
    amount: int
    status: SettlementStatus = SettlementStatus.COMPLETED

    def __post_init__(self) -> None:
        validate_member(self.payer, "payer")
        validate_member(self.payee, "payee")
        validate_amount(self.amount, "amount")
        # Accept the raw string value as a convenience for callers.
        try:
            status = SettlementStatus(self.status)
        except ValueError:
            raise EngineError(
                ErrorCode.INVALID_SETTLEMENT_STATUS,
                f"Unknown settlement status {self.status!r}.",
                400,
                field="status",
            ) from None
        object.__setattr__(self, "status", status)

        if self.payer == self.payee:
            raise SelfSettlementError(
                f"Member {self.payer!r} cannot settle with themselves."
            )

    @property
    def is_completed(self) -> bool:
        return self.status is SettlementStatus.COMPLETED


@dataclass(frozen=True)
class SimplifiedDebt:
    """`from_member` should pay `to_member` `amount` minor units."""

    from_member: Member
    to_member: Member
    amount: int

    def __post_init__(self) -> None:
        validate_member(self.from_member, "from")
        validate_member(self.to_member, "to")
        validate_amount(self.amount, "amount")

        if self.from_member == self.to_member:
            raise SelfSettlementError(
                f"Member {self.from_member!r} cannot owe themselves.",
                field="to",
            )

    def involves(self, member: Member) -> bool:
        return member == self.from_member or member == self.to_member

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SimplifiedDebt {self.from_member!r} -> {self.to_member!r} "
            f"amount={self.amount}>"
        )
