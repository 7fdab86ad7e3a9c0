"""
errors.py — EngineError base class and error code registry.

Every failure raised by the settlement engine uses a code defined here.
Do not raise strings or generic exceptions from model, schema or service code.

Rules:
  - New error codes require: add constant here + add a test that raises it.
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Every failure is a validation or integrity failure. Nothing here is
    transient, so the engine never retries; the calling API layer translates
    `http_status` into its response.
"""

from __future__ import annotations

from marshmallow import ValidationError


class EngineError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which record field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP-equivalent status is indicated in the comment.
#
# IMPORTANT: these are the string values surfaced to callers.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Record / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    INVALID_MEMBER             = "INVALID_MEMBER"
    INVALID_SETTLEMENT_STATUS  = "INVALID_SETTLEMENT_STATUS"
    EMPTY_PARTICIPANTS         = "EMPTY_PARTICIPANTS"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    DUPLICATE_SPLIT_MEMBER     = "DUPLICATE_SPLIT_MEMBER"

    # ── Business Rule Violations (422) ────────────────────────────────────
    SPLIT_SUM_MISMATCH            = "SPLIT_SUM_MISMATCH"
    PAYER_NOT_MEMBER              = "PAYER_NOT_MEMBER"
    SPLIT_MEMBER_NOT_MEMBER       = "SPLIT_MEMBER_NOT_MEMBER"
    SETTLEMENT_MEMBER_NOT_MEMBER  = "SETTLEMENT_MEMBER_NOT_MEMBER"
    SELF_SETTLEMENT               = "SELF_SETTLEMENT"

    # ── Integrity Errors (500) ─────────────────────────────────────────────
    # Raised when data handed to the engine is internally inconsistent, e.g.
    # balances read from a snapshot taken mid-write.
    UNBALANCED_INPUT           = "UNBALANCED_INPUT"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Typed errors ───────────────────────────────────────────────────────────
# Callers may catch these by class or inspect `code`; both are stable.

class InvalidAmountError(EngineError):
    """An amount is not a positive (or, for splits, non-negative) integer."""

    def __init__(self, message: str, field: str | None = "amount") -> None:
        super().__init__(ErrorCode.INVALID_AMOUNT, message, 400, field=field)


class EmptyParticipantsError(EngineError):
    """The Equal-Split Allocator was given nobody to split between."""

    def __init__(
            self,
            message: str = "At least one participant is required.",
            field: str | None = "participants",
    ) -> None:
        super().__init__(ErrorCode.EMPTY_PARTICIPANTS, message, 400, field=field)


class InvalidMemberError(EngineError):
    """A member identifier is not an int or a non-blank string."""

    def __init__(self, message: str, field: str | None = "member") -> None:
        super().__init__(ErrorCode.INVALID_MEMBER, message, 400, field=field)


class DuplicateMemberError(EngineError):
    """The same member appears twice where members must be distinct."""

    def __init__(
            self,
            message: str,
            code: str = ErrorCode.DUPLICATE_SPLIT_MEMBER,
            field: str | None = "splits",
    ) -> None:
        super().__init__(code, message, 400, field=field)


class SplitSumMismatchError(EngineError):
    """An expense's splits do not add up to its amount."""

    def __init__(self, message: str, field: str | None = "splits") -> None:
        super().__init__(ErrorCode.SPLIT_SUM_MISMATCH, message, 422, field=field)


class MemberNotInGroupError(EngineError):
    """A payer, split member or settlement party is outside the group."""

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 422, field=field)


class SelfSettlementError(EngineError):
    """A payment from a member to themselves."""

    def __init__(self, message: str, field: str | None = "payee") -> None:
        super().__init__(ErrorCode.SELF_SETTLEMENT, message, 422, field=field)


class UnbalancedInputError(EngineError):
    """Balances handed to the Debt Simplifier do not sum to zero."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.UNBALANCED_INPUT, message, 500)


# ── marshmallow translation ────────────────────────────────────────────────

# Codes a schema may raise as a ValidationError message, mapped to the typed
# error the loaders re-raise them as.
_CODE_TO_ERROR = {
    ErrorCode.INVALID_AMOUNT:         lambda msg, field: InvalidAmountError(msg, field=field),
    ErrorCode.INVALID_MEMBER:         lambda msg, field: InvalidMemberError(msg, field=field),
    ErrorCode.EMPTY_PARTICIPANTS:     lambda msg, field: EmptyParticipantsError(msg, field=field),
    ErrorCode.DUPLICATE_SPLIT_MEMBER: lambda msg, field: DuplicateMemberError(
        msg, code=ErrorCode.DUPLICATE_SPLIT_MEMBER, field=field,
    ),
    ErrorCode.DUPLICATE_PARTICIPANT:  lambda msg, field: DuplicateMemberError(
        msg, code=ErrorCode.DUPLICATE_PARTICIPANT, field=field,
    ),
}

_DEFAULT_MESSAGES = {
    ErrorCode.INVALID_AMOUNT: "Amount must be a positive integer number of minor units.",
    ErrorCode.INVALID_MEMBER: "Member must be an integer or a non-blank string.",
    ErrorCode.INVALID_SETTLEMENT_STATUS: "status must be 'pending', 'completed' or 'cancelled'.",
    ErrorCode.EMPTY_PARTICIPANTS: "At least one participant is required.",
    ErrorCode.DUPLICATE_SPLIT_MEMBER: "The same member appears more than once in splits.",
    ErrorCode.DUPLICATE_PARTICIPANT: "The same member appears more than once in participants.",
}


def _first_message(messages, path: tuple = ()) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages structure and returns the first
    (dotted field path, message) pair found.

    Example: {"splits": {0: {"owed": ["Not a valid integer."]}}}
             → ("splits.0.owed", "Not a valid integer.")
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            next_path = path if key == "_schema" else path + (str(key),)
            return _first_message(value, next_path)
    if isinstance(messages, list) and messages:
        first = messages[0]
        if isinstance(first, (dict, list)):
            return _first_message(first, path)
        return (".".join(path) or None, str(first))
    return (".".join(path) or None, str(messages) if messages else "Invalid input.")


def from_validation_error(error: ValidationError) -> EngineError:
    """
    Converts a marshmallow ValidationError into an EngineError.

    Only the FIRST failing field is reported ("one error, not many").
    If the message is one of our registered codes it is used directly and
    mapped onto the matching typed error; a marshmallow "Missing data" message
    becomes MISSING_FIELD; anything else is INVALID_FIELD.
    """
    field, raw_message = _first_message(error.messages)

    if raw_message in _CODE_TO_ERROR:
        return _CODE_TO_ERROR[raw_message](_DEFAULT_MESSAGES[raw_message], field)
    if raw_message in vars(ErrorCode).values():
        return EngineError(
            raw_message,
            _DEFAULT_MESSAGES.get(raw_message, "Invalid input."),
            400,
            field=field,
        )
    if raw_message.startswith("Missing data for required field"):
        return EngineError(ErrorCode.MISSING_FIELD, raw_message, 400, field=field)
    return EngineError(ErrorCode.INVALID_FIELD, raw_message, 400, field=field)
