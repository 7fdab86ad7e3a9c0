"""
services/split_service.py — Equal-Split Allocator.

Divides an integer amount between an ordered list of participants so the
shares add back to the amount exactly.

Remainder policy:
  - Everyone receives floor(amount / n).
  - The WHOLE remainder (amount mod n, always < n) goes to the FIRST
    participant in the order given. It is not spread one unit at a time.
  - Order therefore matters, and is the caller's choice. Use payer_first()
    when the payer should absorb the leftover units.

Layer rules:
  - No I/O, no global state. Same input, same output, every time.
  - Receives plain ints and members; returns Split / Expense records.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ledger.engine.errors import (
    DuplicateMemberError,
    EmptyParticipantsError,
    EngineError,
    ErrorCode,
    InvalidAmountError,
)
from ledger.engine.models.expense import (
    Expense,
    Member,
    Split,
    validate_amount,
    validate_member,
)
from ledger.engine.schemas.expense_schema import load_equal_split_request

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _validate_participants(participants: Sequence[Member]) -> list[Member]:
    """
    Raises EmptyParticipantsError for an empty list and DuplicateMemberError
    if a member is listed twice (two splits for one member would break the
    one-split-per-member rule on Expense).
    """
    members = list(participants)
    if not members:
        raise EmptyParticipantsError()

    seen: set = set()
    for member in members:
        validate_member(member, "participants")
        if member in seen:
            raise DuplicateMemberError(
                f"Member {member!r} appears more than once in participants.",
                code=ErrorCode.DUPLICATE_PARTICIPANT,
                field="participants",
            )
        seen.add(member)
    return members


# ── Public service functions ───────────────────────────────────────────────

def split_equally(amount: int, participants: Sequence[Member]) -> list[Split]:
    """
    Canonical equal split.

    Args:
        amount:       Total to divide, in minor units. Must be an int >= 1.
        participants: Ordered, non-empty, distinct members. The first one
                      absorbs the remainder.

    Returns:
        One Split per participant, in participant order.
        Guarantees: sum(s.owed for s in result) == amount.

    Raises:
        InvalidAmountError      -- amount is not an int >= 1.
        EmptyParticipantsError  -- participants is empty.
        DuplicateMemberError    -- a participant is listed twice.

    Example:
        split_equally(100, ["A", "B", "C"]) -> A:34, B:33, C:33
        split_equally(1, ["X", "Y", "Z"])   -> X:1,  Y:0,  Z:0
    """
    try:
        validate_amount(amount, "amount")
    except InvalidAmountError:
        logger.warning("Rejected equal split: invalid amount %r", amount)
        raise
    members = _validate_participants(participants)

    n = len(members)
    base, remainder = divmod(amount, n)

    owed = [base] * n
    owed[0] += remainder

    splits = [Split(member, share) for member, share in zip(members, owed)]

    # Must always hold; a failure here is a programming error.
    computed_sum = sum(s.owed for s in splits)
    if computed_sum != amount:
        logger.error(
            "Equal split produced sum %s for amount %s across %s participants",
            computed_sum, amount, n,
        )
        raise EngineError(
            ErrorCode.INTERNAL_ERROR,
            f"Equal split computation produced sum {computed_sum} for amount {amount}. "
            f"This is a bug, please report it.",
            500,
        )

    logger.debug(
        "Split %s between %s participants: base=%s remainder=%s",
        amount, n, base, remainder,
    )
    return splits


def payer_first(payer: Member, participants: Sequence[Member]) -> list[Member]:
    """
    Returns `participants` reordered so `payer` comes first, keeping the
    relative order of everyone else. If the payer is not listed they are
    prepended, which makes them a participant.
    """
    validate_member(payer, "payer")
    return [payer] + [m for m in participants if m != payer]


def split_expense_equally(
        payer: Member,
        amount: int,
        participants: Sequence[Member],
) -> Expense:
    """
    Builds a complete Expense whose splits come from split_equally().

    The participant order is used as given; call payer_first() beforehand
    for the "payer absorbs the remainder" convention.
    """
    splits = split_equally(amount, participants)
    expense = Expense(payer=payer, amount=amount, splits=tuple(splits))
    expense.check_split_sum()
    return expense


def split_expense_from_request(payload: dict) -> Expense:
    """
    Allocates a new expense from a raw API request body.

    {"payer": 1, "amount": 10000, "participants": [2, 1, 3], "payer_first": true}

    Raises EngineError subclasses for malformed requests (see
    schemas/expense_schema.py) exactly as split_equally() does.
    """
    request = load_equal_split_request(payload)

    participants = request["participants"]
    if request["payer_first"]:
        participants = payer_first(request["payer"], participants)

    return split_expense_equally(request["payer"], request["amount"], participants)
