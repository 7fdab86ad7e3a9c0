"""
services/balance_service.py — Balance computation.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.

Layer rules:
  - No I/O. No persistence or HTTP knowledge.
  - Receives members, Expense records and (optionally) Settlement records.
  - Returns plain Python dicts and lists.

Snapshot contract:
  The caller must pass a committed, consistent snapshot: an expense and all
  of its splits are written atomically by the persistence layer, and balance
  reads never see a half-written expense. If that contract is broken the
  split-sum check below trips and nothing is computed.

Zero-sum guarantee:
  compute_balances() produces sum == 0 whenever every expense satisfies the
  split-sum rule, because each payer credit equals the sum of its debits and
  each settlement moves the same amount in both directions. The sum is still
  checked before returning.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ledger.engine.errors import EngineError, ErrorCode, MemberNotInGroupError
from ledger.engine.models.expense import Expense, Member, member_sort_key, validate_member
from ledger.engine.models.settlement import Settlement
from ledger.engine.schemas.settlement_schema import BalanceSchema, dump_debts
from ledger.engine.services.settlement_service import simplify_debts

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _require_member(
        member: Member,
        member_set: set,
        code: str,
        field: str,
) -> None:
    """Raises MemberNotInGroupError (422) if `member` is not in the group."""
    if member not in member_set:
        logger.warning("Rejected record: %s %r is not a group member", field, member)
        raise MemberNotInGroupError(
            code,
            f"Member {member!r} is not a member of this group.",
            field=field,
        )


def _validate_expense(expense: Expense, member_set: set) -> None:
    _require_member(expense.payer, member_set, ErrorCode.PAYER_NOT_MEMBER, "payer")
    for split in expense.splits:
        _require_member(split.member, member_set, ErrorCode.SPLIT_MEMBER_NOT_MEMBER, "splits")
    expense.check_split_sum()


def _validate_settlement(settlement: Settlement, member_set: set) -> None:
    _require_member(
        settlement.payer, member_set, ErrorCode.SETTLEMENT_MEMBER_NOT_MEMBER, "payer",
    )
    _require_member(
        settlement.payee, member_set, ErrorCode.SETTLEMENT_MEMBER_NOT_MEMBER, "payee",
    )


def balance_sum(balances: Mapping[Member, int]) -> int:
    return sum(balances.values())


# ── Core algorithm ─────────────────────────────────────────────────────────

def compute_balances(
        members: Iterable[Member],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement] = (),
) -> dict[Member, int]:
    """
    Canonical balance computation for a group.

    Returns {member: net_balance} for every member, ordered by member
    (ints ascending, then strings ascending) so repeated calls produce
    identical output regardless of how `members` was ordered.

    Algorithm:
      1. Every member starts at 0.
      2. Credit each payer for the full expense amount they fronted.
      3. Debit each participant for their split.
      4. Net COMPLETED settlements: the payer gains credit, the payee loses it.
         Pending and cancelled settlements are ignored.

    Raises:
        InvalidMemberError     -- a member identifier is malformed.
        MemberNotInGroupError  -- payer, split member or settlement party
                                  outside `members`.
        SplitSumMismatchError  -- an expense's splits do not sum to its amount.
        EngineError(INTERNAL_ERROR) -- the result does not sum to zero.
    """
    ordered = sorted(
        {validate_member(m, "members") for m in members},
        key=member_sort_key,
    )
    member_set = set(ordered)
    balances: dict[Member, int] = {member: 0 for member in ordered}

    expense_count = 0
    for expense in expenses:
        _validate_expense(expense, member_set)
        balances[expense.payer] += expense.amount
        for split in expense.splits:
            balances[split.member] -= split.owed
        expense_count += 1

    netted = 0
    for settlement in settlements:
        _validate_settlement(settlement, member_set)
        if not settlement.is_completed:
            continue
        balances[settlement.payer] += settlement.amount
        balances[settlement.payee] -= settlement.amount
        netted += 1

    total = balance_sum(balances)
    if total != 0:
        # Unreachable with validated records; a failure here is a programming error.
        logger.error("Balance integrity check failed: sum was %s", total)
        raise EngineError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed: sum was {total} (expected 0).",
            500,
        )

    logger.debug(
        "Computed balances for %s members from %s expenses and %s settlements",
        len(balances), expense_count, netted,
    )
    return balances


# ── Report ─────────────────────────────────────────────────────────────────

def build_balance_report(
        members: Iterable[Member],
        expenses: Iterable[Expense],
        settlements: Iterable[Settlement] = (),
        names: Mapping[Member, str] | None = None,
) -> dict:
    """
    Builds the full balance payload for the display layer.

    Computes balances, enriches them with display names, and attaches the
    simplified settle-up suggestions. Amounts stay integer minor units;
    formatting them as currency is the consumer's job.

    Returns:
        {
          "balances":         [{"member", "name", "balance"}, ...],
          "simplified_debts": [{"from", "from_name", "to", "to_name", "amount"}, ...],
          "balance_sum":      0,
        }
    """
    names = dict(names or {})

    def _name(member: Member) -> str:
        return names.get(member, str(member))

    balances = compute_balances(members, expenses, settlements)
    debts = simplify_debts(balances)

    balance_rows = BalanceSchema(many=True).dump([
        {"member": member, "name": _name(member), "balance": balance}
        for member, balance in balances.items()
    ])
    debt_rows = dump_debts(debts)
    for row, debt in zip(debt_rows, debts):
        row["from_name"] = _name(debt.from_member)
        row["to_name"] = _name(debt.to_member)

    return {
        "balances": balance_rows,
        "simplified_debts": debt_rows,
        "balance_sum": balance_sum(balances),
    }
