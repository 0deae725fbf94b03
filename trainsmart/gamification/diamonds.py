"""Diamond ledger: a spendable currency that never goes below zero"""
import logging

logger = logging.getLogger(__name__)


def consume_diamonds(current: int, amount: int) -> int:
    """Spend diamonds; over-consumption floors at zero instead of failing"""
    remaining = max(0, current - amount)
    if current - amount < 0:
        logger.debug(f"Diamond consumption of {amount} floored at 0 (had {current})")
    return remaining


def add_diamonds(current: int, amount: int) -> int:
    """Credit diamonds (purchases, ad rewards)"""
    return current + amount
