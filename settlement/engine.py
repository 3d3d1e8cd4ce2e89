"""
Purpose: Revenue split for a completed job.
What it does:
- compute_settlement: pure function from (job, pricing snapshot, partner) to a
  SettlementPlan (platform commission, driver net, partner commission,
  balance deltas and ledger records)
- SettlementEngine.apply: writes the plan; if any write fails the balance
  deltas already applied are reversed before the error propagates

Partner commission is paid on top: it is not taken out of the platform
commission or the driver's net.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from common.errors import ValidationError
from drivers.models import User
from orders.models import Job
from pricing.policy import PricingConfig
from .ledger import Transaction, TransactionKind

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_ACCOUNT = "system"


@dataclass(frozen=True)
class BalanceDelta:
    user_id: str
    amount: float
    earnings: float = 0.0
    trips: int = 0


@dataclass(frozen=True)
class SettlementPlan:
    job_id: str
    price: float
    commission_rate: float
    platform_commission: float
    driver_id: str
    driver_net: float
    partner_id: Optional[str] = None
    partner_rate: Optional[float] = None
    partner_earnings: float = 0.0
    balance_deltas: Tuple[BalanceDelta, ...] = ()
    transactions: Tuple[Transaction, ...] = ()


def compute_settlement(
    job: Job,
    config: PricingConfig,
    *,
    partner: Optional[User] = None,
    platform_account_id: str = DEFAULT_PLATFORM_ACCOUNT,
    now: Optional[datetime] = None,
) -> SettlementPlan:
    """
    Reads only the price frozen on the job at acceptance time.
    driver_net + platform_commission == price, to the cent.
    """
    if not job.driver_id:
        raise ValidationError(f"Job {job.id} has no assigned driver to settle")
    if job.price is None or job.price <= 0:
        raise ValidationError(f"Job {job.id} has no agreed price to settle")
    if job.partner_id and (partner is None or partner.id != job.partner_id):
        raise ValidationError(f"Job {job.id} references partner {job.partner_id} but it was not supplied")

    now = now or datetime.now(timezone.utc)
    price = float(job.price)
    commission = round(price * config.commission_rate, 2)
    driver_net = round(price - commission, 2)

    deltas: List[BalanceDelta] = [
        BalanceDelta(job.driver_id, amount=driver_net, earnings=driver_net, trips=1),
    ]
    records: List[Transaction] = [
        Transaction(
            user_id=job.driver_id,
            kind=TransactionKind.EARNING,
            amount=driver_net,
            description=f"Earnings for Trip #{job.id}",
            job_id=job.id,
            timestamp=now,
        ),
    ]

    partner_rate = None
    partner_earnings = 0.0
    if partner is not None:
        partner_rate = partner.commission_rate if partner.commission_rate is not None else config.partner_commission_rate
        if partner_rate:
            partner_earnings = round(price * partner_rate, 2)
            deltas.append(BalanceDelta(partner.id, amount=partner_earnings, earnings=partner_earnings))
            records.append(
                Transaction(
                    user_id=partner.id,
                    kind=TransactionKind.COMMISSION,
                    amount=partner_earnings,
                    description=f"Referral commission for Trip #{job.id}",
                    job_id=job.id,
                    timestamp=now,
                )
            )

    records.append(
        Transaction(
            user_id=platform_account_id,
            kind=TransactionKind.REVENUE,
            amount=commission,
            description=f"Commission for Trip #{job.id}",
            job_id=job.id,
            timestamp=now,
        )
    )

    return SettlementPlan(
        job_id=job.id,
        price=price,
        commission_rate=config.commission_rate,
        platform_commission=commission,
        driver_id=job.driver_id,
        driver_net=driver_net,
        partner_id=partner.id if partner is not None else None,
        partner_rate=partner_rate,
        partner_earnings=partner_earnings,
        balance_deltas=tuple(deltas),
        transactions=tuple(records),
    )


class SettlementEngine:
    """
    Applies settlement plans to the user directory and the ledger.
    """
    def __init__(self, directory, ledger):
        self.directory = directory
        self.ledger = ledger

    def apply(self, plan: SettlementPlan) -> SettlementPlan:
        applied: List[BalanceDelta] = []
        try:
            for delta in plan.balance_deltas:
                self.directory.update_user_balance(
                    delta.user_id, delta.amount,
                    earnings_delta=delta.earnings, trips_delta=delta.trips,
                )
                applied.append(delta)
            self.ledger.append_many(plan.transactions)
        except Exception:
            logger.exception("Settlement of job %s failed, reversing %d balance update(s)",
                             plan.job_id, len(applied))
            for delta in reversed(applied):
                self.directory.update_user_balance(
                    delta.user_id, -delta.amount,
                    earnings_delta=-delta.earnings, trips_delta=-delta.trips,
                )
            raise

        logger.info("Settled job %s: price %.2f, driver %.2f, platform %.2f, partner %.2f",
                    plan.job_id, plan.price, plan.driver_net, plan.platform_commission, plan.partner_earnings)
        return plan
