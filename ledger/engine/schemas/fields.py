"""
schemas/fields.py — Custom marshmallow fields shared by the record schemas.

IMPORTANT: schemas inherit from marshmallow.Schema directly. They have no
knowledge of the persistence or HTTP layers and can be used without any
application context.
"""

from __future__ import annotations

from marshmallow import ValidationError, fields

from ledger.engine.errors import ErrorCode


class MemberField(fields.Field):
    """
    A group member identifier: an int or a non-blank string.

    Rejected values (bool, float, blank strings, None inside a list) raise
    ValidationError(INVALID_MEMBER) so the loaders can map it to
    InvalidMemberError.
    """

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValidationError(ErrorCode.INVALID_MEMBER)
        if isinstance(value, str) and not value.strip():
            raise ValidationError(ErrorCode.INVALID_MEMBER)
        return value

    def _serialize(self, value, attr, obj, **kwargs):
        return value


class MinorUnits(fields.Integer):
    """
    An amount in minor currency units. Always strict: "10", 10.0 and True are
    all rejected, so a float can never sneak into the arithmetic.
    """

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("strict", True)
        super().__init__(**kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool):
            raise self.make_error("invalid")
        return super()._deserialize(value, attr, data, **kwargs)
