"""
Purpose: Admin payouts out of a user's wallet balance.
"""

import logging
import math

from common.errors import ValidationError
from .ledger import Transaction, TransactionKind

logger = logging.getLogger(__name__)


def manual_payout(directory, ledger, user_id: str, amount: float, *, description: str = "Manual payout by admin") -> Transaction:
    """
    Pay `amount` out of the user's balance. The balance can't go negative.
    The balance is debited first and restored if the ledger write fails.
    """
    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise ValidationError("payout amount must be > 0")

    user = directory.get_user(user_id)
    if amount > user.balance + 1e-9:
        raise ValidationError(f"payout {amount:.2f} exceeds balance {user.balance:.2f} of {user_id}")

    record = Transaction(
        user_id=user_id,
        kind=TransactionKind.PAYOUT,
        amount=round(amount, 2),
        description=description,
    )

    directory.update_user_balance(user_id, -record.amount)
    try:
        ledger.append_transaction(record)
    except Exception:
        directory.update_user_balance(user_id, record.amount)
        raise

    logger.info("Paid out %.2f to %s", record.amount, user_id)
    return record
