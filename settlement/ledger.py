"""
Purpose: Append-only transaction ledger.
What it does:
Records money movements (earnings, commissions, platform revenue, client
payments, payouts). There is no update or delete: corrections are new entries.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Collection, Iterable, List, Optional, Tuple

from common.errors import ValidationError

logger = logging.getLogger(__name__)


class TransactionKind(str, Enum):
    EARNING = "EARNING"        # driver net for a trip
    COMMISSION = "COMMISSION"  # referring partner's share
    REVENUE = "REVENUE"        # platform commission
    PAYMENT = "PAYMENT"        # client paid for a trip
    PAYOUT = "PAYOUT"          # money sent out to a driver/partner


class TransactionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Transaction:
    user_id: str
    kind: TransactionKind
    amount: float
    description: str
    job_id: Optional[str] = None
    status: TransactionStatus = TransactionStatus.SUCCESS
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class InMemoryLedger:

    def __init__(self):
        self._entries: List[Transaction] = []
        self._lock = threading.Lock()

    def append_transaction(self, record: Transaction) -> Transaction:
        self.append_many([record])
        return record

    def append_many(self, records: Iterable[Transaction]) -> Tuple[Transaction, ...]:
        """All-or-nothing append of a batch."""
        records = tuple(records)
        for record in records:
            if not isinstance(record, Transaction):
                raise ValidationError(f"Not a transaction: {record!r}")
            if record.amount < 0:
                raise ValidationError("transaction amounts are recorded as positive values")
        with self._lock:
            self._entries.extend(records)
        for record in records:
            logger.info("Ledger %s %s %.2f for %s (job %s)",
                        record.kind.value, record.status.value, record.amount, record.user_id, record.job_id)
        return records

    def transactions(
        self,
        *,
        user_id: Optional[str] = None,
        job_id: Optional[str] = None,
        kinds: Optional[Collection[TransactionKind]] = None,
    ) -> List[Transaction]:
        entries = list(self._entries)
        if user_id is not None:
            entries = [entry for entry in entries if entry.user_id == user_id]
        if job_id is not None:
            entries = [entry for entry in entries if entry.job_id == job_id]
        if kinds is not None:
            entries = [entry for entry in entries if entry.kind in kinds]
        return entries

    def __len__(self) -> int:
        return len(self._entries)
