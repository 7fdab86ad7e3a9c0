"""
engine/__init__.py — Settlement engine entry point.

Pattern: configure_engine(config_name) applies configuration (logging) and
         returns the config class. Nothing is configured at import time, so
         a host application keeps control of its own logging unless it opts in.

The three components are pure functions and need no configuration to run:

    from ledger.engine import compute_balances, simplify_debts, split_equally

    splits   = split_equally(100, ["A", "B", "C"])        # A:34, B:33, C:33
    expense  = Expense(payer="A", amount=100, splits=splits)
    balances = compute_balances({"A", "B", "C"}, [expense])
    debts    = simplify_debts(balances)                    # B→A 33, C→A 33
"""

from __future__ import annotations

import logging

from ledger.config import BaseConfig, config_by_name, validate_config
from ledger.engine.errors import (
    DuplicateMemberError,
    EmptyParticipantsError,
    EngineError,
    ErrorCode,
    InvalidAmountError,
    InvalidMemberError,
    MemberNotInGroupError,
    SelfSettlementError,
    SplitSumMismatchError,
    UnbalancedInputError,
)
from ledger.engine.models.expense import Expense, Member, Split
from ledger.engine.models.settlement import Settlement, SettlementStatus, SimplifiedDebt
from ledger.engine.services.balance_service import build_balance_report, compute_balances
from ledger.engine.services.settlement_service import plan_settlement, simplify_debts
from ledger.engine.services.split_service import payer_first, split_equally

__all__ = [
    "configure_engine",
    "compute_balances",
    "build_balance_report",
    "split_equally",
    "payer_first",
    "simplify_debts",
    "plan_settlement",
    "Member",
    "Split",
    "Expense",
    "Settlement",
    "SettlementStatus",
    "SimplifiedDebt",
    "EngineError",
    "ErrorCode",
    "InvalidAmountError",
    "EmptyParticipantsError",
    "InvalidMemberError",
    "DuplicateMemberError",
    "SplitSumMismatchError",
    "MemberNotInGroupError",
    "SelfSettlementError",
    "UnbalancedInputError",
]

# Root logger for every module under ledger.*
LOGGER_NAME = "ledger"

# Marks the handler configure_engine() installs so a second call replaces
# nothing and adds nothing.
_HANDLER_ATTR = "_ledger_engine_handler"


def configure_engine(config_name: str = "development") -> type[BaseConfig]:
    """
    Applies logging configuration for the engine.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        The config class that was applied.

    Raises:
        ValueError: the resolved config has an unknown LOG_LEVEL.
    """
    config_class = config_by_name.get(config_name, config_by_name["development"])
    validate_config(config_class)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config_class.LOG_LEVEL)

    if config_class.LOG_TO_STDERR and not _has_engine_handler(logger):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config_class.LOG_FORMAT))
        setattr(handler, _HANDLER_ATTR, True)
        logger.addHandler(handler)

    logger.debug("Settlement engine configured (%s)", config_name)
    return config_class


def _has_engine_handler(logger: logging.Logger) -> bool:
    return any(getattr(h, _HANDLER_ATTR, False) for h in logger.handlers)
