"""
Purpose: Read-only money reports over the ledger (pandas).
What it does:
- transactions_frame: ledger entries -> DataFrame
- monthly_statement: one user's totals per kind for a calendar month
- platform_summary: job counts and money totals for the admin dashboard
"""

from __future__ import annotations

from typing import Dict, Iterable

import pandas as pd

from orders.models import Job, JobStatus
from .ledger import Transaction, TransactionKind

COLUMNS = ["id", "user_id", "job_id", "kind", "status", "amount", "timestamp", "description"]


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "id": t.id,
            "user_id": t.user_id,
            "job_id": t.job_id,
            "kind": t.kind.value,
            "status": t.status.value,
            "amount": t.amount,
            "timestamp": t.timestamp,
            "description": t.description,
        }
        for t in transactions
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df["amount"] = df["amount"].astype(float)
    return df


def monthly_statement(transactions: Iterable[Transaction], user_id: str, year: int, month: int) -> Dict:
    """
    Totals per transaction kind for one user in one calendar month (UTC).
    Every kind is present in `totals`, zero when unused.
    """
    df = transactions_frame(transactions)
    df = df[df["user_id"] == user_id]
    df = df[(df["timestamp"].dt.year == year) & (df["timestamp"].dt.month == month)]

    totals = {kind.value: 0.0 for kind in TransactionKind}
    for kind, amount in df.groupby("kind")["amount"].sum().items():
        totals[kind] = round(float(amount), 2)

    return {
        "user_id": user_id,
        "year": year,
        "month": month,
        "count": int(len(df)),
        "totals": totals,
    }


def platform_summary(jobs: Iterable[Job], transactions: Iterable[Transaction]) -> Dict:
    jobs = list(jobs)
    df = transactions_frame(transactions)
    by_kind = df.groupby("kind")["amount"].sum()

    def total(kind: TransactionKind) -> float:
        return round(float(by_kind.get(kind.value, 0.0)), 2)

    by_status = {status.value: 0 for status in JobStatus}
    for job in jobs:
        by_status[job.status.value] += 1

    return {
        "total_jobs": len(jobs),
        "jobs_by_status": by_status,
        "active_disputes": by_status[JobStatus.DISPUTED.value],
        "platform_revenue": total(TransactionKind.REVENUE),
        "driver_earnings": total(TransactionKind.EARNING),
        "partner_commissions": total(TransactionKind.COMMISSION),
        "client_payments": total(TransactionKind.PAYMENT),
        "payouts": total(TransactionKind.PAYOUT),
    }
