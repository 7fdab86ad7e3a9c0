"""
services/settlement_service.py — Debt simplification and settlement plans.

simplify_debts() turns net balances into payer → payee suggestions. The
helpers below it (apply, summaries, stats, rounds) operate on the resulting
list of SimplifiedDebt records for the "settle up" view.

Algorithm (greedy, sort once, two cursors):
  1. Drop zero balances. Split the rest into debtors (< 0) and creditors (> 0).
  2. Sort both by magnitude, largest first. Ties are broken by member order
     (ints ascending, then strings ascending) so output is reproducible.
  3. Match debtor[i] with creditor[j] for min(debt, credit). Advance whichever
     side reached zero (possibly both).
  4. Each step zeroes at least one party, so n non-zero members produce at
     most n - 1 debts.

This is a heuristic. It always nets out exactly and respects the n - 1
bound, but it does not search for the true minimum number of payments.

Pre-condition: sum(balances.values()) == 0. Violations raise
UnbalancedInputError instead of producing a wrong but plausible plan.

Layer rules:
  - No I/O, no global state.
  - Receives plain dicts / records; returns records and plain values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from ledger.engine.errors import InvalidAmountError, UnbalancedInputError
from ledger.engine.models.expense import Expense, Member, member_sort_key, validate_member
from ledger.engine.models.settlement import Settlement, SimplifiedDebt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberDebtSummary:
    """Totals for one member across a settlement plan."""

    owes: int
    owed: int

    @property
    def net(self) -> int:
        return self.owed - self.owes


@dataclass(frozen=True)
class SettlementStats:
    transaction_count: int
    total_amount: int
    average_amount: int
    max_amount: int
    min_amount: int


# ── Private helpers ────────────────────────────────────────────────────────

def _validate_balances(balances: Mapping[Member, int]) -> None:
    """Every key must be a member and every value an int (bool rejected)."""
    for member, balance in balances.items():
        validate_member(member, "member")
        if isinstance(balance, bool) or not isinstance(balance, int):
            raise InvalidAmountError(
                f"Balance for member {member!r} must be an integer, "
                f"got {type(balance).__name__}.",
                field="balances",
            )


def _check_conservation(balances: Mapping[Member, int]) -> None:
    total = sum(balances.values())
    if total != 0:
        logger.error(
            "Refusing to simplify unbalanced input: sum=%s across %s members",
            total, len(balances),
        )
        raise UnbalancedInputError(
            f"Balances must sum to 0 before simplification, got {total}. "
            f"The balances were probably read from an inconsistent snapshot."
        )


def _round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half up, for non-negative operands."""
    return (2 * numerator + denominator) // (2 * denominator)


# ── Core algorithm ─────────────────────────────────────────────────────────

def simplify_debts(balances: Mapping[Member, int]) -> list[SimplifiedDebt]:
    """
    Greedy minimum cash flow debt simplification.

    Args:
        balances: {member: net_balance} from compute_balances().
                  Positive = the group owes this member.
                  MUST sum to zero.

    Returns:
        SimplifiedDebt records, in the order they were matched.
        An empty list means every balance is already zero.

    Raises:
        InvalidAmountError    -- a balance is not an int.
        UnbalancedInputError  -- balances do not sum to zero.
    """
    _validate_balances(balances)
    _check_conservation(balances)

    # Mutable [member, remaining] pairs; debts stored as positive magnitudes.
    debtors = sorted(
        ([member, -bal] for member, bal in balances.items() if bal < 0),
        key=lambda x: (-x[1], member_sort_key(x[0])),
    )
    creditors = sorted(
        ([member, bal] for member, bal in balances.items() if bal > 0),
        key=lambda x: (-x[1], member_sort_key(x[0])),
    )

    debts: list[SimplifiedDebt] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        debtor, creditor = debtors[i], creditors[j]

        transfer = min(debtor[1], creditor[1])
        if transfer > 0:
            debts.append(SimplifiedDebt(debtor[0], creditor[0], transfer))

        debtor[1] -= transfer
        creditor[1] -= transfer

        if debtor[1] == 0:
            i += 1
        if creditor[1] == 0:
            j += 1

    logger.debug(
        "Simplified %s debtors and %s creditors into %s debts",
        len(debtors), len(creditors), len(debts),
    )
    return debts


def plan_settlement(
        members: Iterable[Member],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement] = (),
) -> list[SimplifiedDebt]:
    """Convenience: compute_balances() followed by simplify_debts()."""
    # Local import: balance_service imports this module for its report.
    from ledger.engine.services.balance_service import compute_balances

    return simplify_debts(compute_balances(members, expenses, settlements))


# ── Plan helpers ───────────────────────────────────────────────────────────

def apply_debts(
        balances: Mapping[Member, int],
        debts: Iterable[SimplifiedDebt],
) -> dict[Member, int]:
    """
    Returns a copy of `balances` after every debt has been paid.

    Paying a debt raises the payer's balance and lowers the payee's, the same
    way a completed Settlement is netted. For a plan produced by
    simplify_debts(balances) every resulting balance is 0.
    """
    result = dict(balances)
    for debt in debts:
        result[debt.from_member] = result.get(debt.from_member, 0) + debt.amount
        result[debt.to_member] = result.get(debt.to_member, 0) - debt.amount
    return result


def is_settled(balances: Mapping[Member, int]) -> bool:
    return all(balance == 0 for balance in balances.values())


def summarize_member(member: Member, debts: Iterable[SimplifiedDebt]) -> MemberDebtSummary:
    """How much `member` pays and receives across a plan."""
    owes = owed = 0
    for debt in debts:
        if debt.from_member == member:
            owes += debt.amount
        elif debt.to_member == member:
            owed += debt.amount
    return MemberDebtSummary(owes=owes, owed=owed)


def debts_for_member(
        member: Member,
        debts: Iterable[SimplifiedDebt],
) -> list[tuple[SimplifiedDebt, bool]]:
    """Returns (debt, is_payer) for every debt involving `member`, in plan order."""
    return [
        (debt, debt.from_member == member)
        for debt in debts
        if debt.involves(member)
    ]


def settlement_stats(debts: Sequence[SimplifiedDebt]) -> SettlementStats:
    """
    Size of a plan. The average is rounded half up to whole minor units.
    An empty plan reports zeros everywhere.
    """
    if not debts:
        return SettlementStats(0, 0, 0, 0, 0)

    amounts = [d.amount for d in debts]
    total = sum(amounts)
    return SettlementStats(
        transaction_count=len(amounts),
        total_amount=total,
        average_amount=_round_half_up(total, len(amounts)),
        max_amount=max(amounts),
        min_amount=min(amounts),
    )


def settlement_rounds(debts: Sequence[SimplifiedDebt]) -> list[list[SimplifiedDebt]]:
    """
    Groups a plan into rounds whose payments can happen at the same time.

    Debts are taken largest first (stable for equal amounts). A debt joins the
    current round unless one of its members already appears there, in which
    case the current round is closed and a new one started.
    """
    rounds: list[list[SimplifiedDebt]] = []
    current: list[SimplifiedDebt] = []
    busy: set = set()

    for debt in sorted(debts, key=lambda d: d.amount, reverse=True):
        if debt.from_member in busy or debt.to_member in busy:
            rounds.append(current)
            current = []
            busy = set()

        current.append(debt)
        busy.update((debt.from_member, debt.to_member))

    if current:
        rounds.append(current)
    return rounds
