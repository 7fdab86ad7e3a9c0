"""
models/expense.py — Member, Split and Expense value records.

These are immutable in-memory records, not ORM rows. The persistence layer
loads its rows and hands the engine these records (directly, or through the
loaders in schemas/expense_schema.py).

Key design points:
  - Money is always an int number of minor units (cents). Never float, and
    never bool even though bool is an int subclass.
  - Field-level rules are checked at construction time.
  - The split-sum rule (sum(splits.owed) == amount) is a cross-field rule and
    lives in Expense.check_split_sum(). The Balance Aggregator and the expense
    loader both call it, so an inconsistent Expense is always rejected before
    it can move a balance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Union

from ledger.engine.errors import (
    DuplicateMemberError,
    EngineError,
    ErrorCode,
    InvalidAmountError,
    InvalidMemberError,
    SplitSumMismatchError,
)


Member = Union[int, str]


# ── Field validators ───────────────────────────────────────────────────────
# Shared by every record in models/. Each returns the validated value so it
# can be used inline in __post_init__.

def validate_member(value, field_name: str = "member") -> Member:
    """Accepts an int or a non-blank str. Rejects bool, float and None."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidMemberError(
            f"{field_name} must be an integer or a string, got {type(value).__name__}.",
            field=field_name,
        )
    if isinstance(value, str) and not value.strip():
        raise InvalidMemberError(
            f"{field_name} must not be blank.",
            field=field_name,
        )
    return value


def validate_amount(value, field_name: str = "amount", minimum: int = 1) -> int:
    """Accepts an int >= minimum. Rejects bool and float outright."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            f"{field_name} must be an integer number of minor units, "
            f"got {type(value).__name__}.",
            field=field_name,
        )
    if value < minimum:
        raise InvalidAmountError(
            f"{field_name} must be at least {minimum}, got {value}.",
            field=field_name,
        )
    return value


def member_sort_key(member: Member) -> tuple[bool, Member]:
    """
    Total order over members: integers first (ascending), then strings
    (ascending). Used everywhere output order must be reproducible.
    """
    return (isinstance(member, str), member)


# ── Records ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Split:
    """One member's share of one expense."""

    member: Member
    owed: int

    def __post_init__(self) -> None:
        validate_member(self.member, "member")
        validate_amount(self.owed, "owed", minimum=0)


@dataclass(frozen=True)
class Expense:
    """
    A purchase fronted by `payer` and shared according to `splits`.

    `splits` is stored as a tuple regardless of the iterable passed in.
    """

    payer: Member
    amount: int
    splits: tuple[Split, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_member(self.payer, "payer")
        validate_amount(self.amount, "amount")

        splits = tuple(self.splits)
        for s in splits:
            if not isinstance(s, Split):
                raise EngineError(
                    ErrorCode.INVALID_FIELD,
                    f"splits must contain Split records, got {type(s).__name__}.",
                    400,
                    field="splits",
                )
        object.__setattr__(self, "splits", splits)

        seen: set = set()
        for s in splits:
            if s.member in seen:
                raise DuplicateMemberError(
                    f"Member {s.member!r} appears more than once in splits.",
                    code=ErrorCode.DUPLICATE_SPLIT_MEMBER,
                )
            seen.add(s.member)

    @property
    def split_total(self) -> int:
        return sum(s.owed for s in self.splits)

    @property
    def members(self) -> list[Member]:
        """Split members, in split order."""
        return [s.member for s in self.splits]

    def owed_by(self, member: Member) -> int:
        """Returns what `member` owes on this expense (0 if not a participant)."""
        for s in self.splits:
            if s.member == member:
                return s.owed
        return 0

    def check_split_sum(self) -> None:
        """
        Raises SplitSumMismatchError unless sum(splits.owed) == amount exactly.
        Tolerance is zero.
        """
        total = self.split_total
        if total != self.amount:
            raise SplitSumMismatchError(
                f"Split amounts ({total}) do not equal expense amount ({self.amount})."
            )


def make_splits(owed_by_member: Iterable[tuple[Member, int]]) -> tuple[Split, ...]:
    """Builds Split records from (member, owed) pairs, preserving order."""
    return tuple(Split(member, owed) for member, owed in owed_by_member)
