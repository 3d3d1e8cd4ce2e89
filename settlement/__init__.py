"""
Settlement package: ledger, revenue split, payouts and reports.

Public API:
- Ledger: Transaction, TransactionKind, TransactionStatus, InMemoryLedger
- Split: compute_settlement, SettlementPlan, BalanceDelta, SettlementEngine
- Payouts: manual_payout
"""
from .ledger import Transaction, TransactionKind, TransactionStatus, InMemoryLedger
from .engine import BalanceDelta, SettlementPlan, SettlementEngine, compute_settlement, DEFAULT_PLATFORM_ACCOUNT
from .payouts import manual_payout

__all__ = [
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "InMemoryLedger",
    "BalanceDelta",
    "SettlementPlan",
    "SettlementEngine",
    "compute_settlement",
    "DEFAULT_PLATFORM_ACCOUNT",
    "manual_payout",
]
