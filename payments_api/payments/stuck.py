from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from payments_api.models.enums import EscrowStatus, InvestmentPayoutStatus, InvestmentStatus
from payments_api.models.escrow import DeliveryEscrow
from payments_api.models.pitch import PitchInvestment
from payments_api.payments.monime import MonimeError

logger = logging.getLogger(__name__)

@dataclass
class StuckPayout:
    source: str
    record_id: str
    recipient_id: str
    status: str
    amount: Decimal
    currency: str | None
    reason: str
    created_at: datetime | None
    payout_id: str | None = None
    provider_status: str | None = None

def find_stuck_payouts(db: Session) -> list[StuckPayout]:
    """Records whose payout nothing will ever re-drive.

    - payment received but no payout id (no payment method, or payout call failed)
    - investments whose payout failed at the provider
    """
    rows: list[StuckPayout] = []

    escrows = db.scalars(
        select(DeliveryEscrow)
        .where(
            DeliveryEscrow.status.in_(
                [EscrowStatus.payment_received.value, EscrowStatus.partial_payment_received.value]
            ),
            DeliveryEscrow.monime_payout_id.is_(None),
        )
        .order_by(DeliveryEscrow.created_at)
    ).all()
    for e in escrows:
        rows.append(
            StuckPayout(
                source="delivery_escrows",
                record_id=str(e.id),
                recipient_id=e.creative_id,
                status=e.status,
                amount=e.net_payout_amount,
                currency=e.currency,
                reason="no_payout_initiated",
                created_at=e.created_at,
                payout_id=e.monime_payout_id,
            )
        )

    investments = db.scalars(
        select(PitchInvestment)
        .where(
            or_(
                (PitchInvestment.status == InvestmentStatus.payment_received.value)
                & PitchInvestment.monime_payout_id.is_(None),
                PitchInvestment.payout_status == InvestmentPayoutStatus.failed.value,
            )
        )
        .order_by(PitchInvestment.created_at)
    ).all()
    for i in investments:
        rows.append(
            StuckPayout(
                source="pitch_investments",
                record_id=str(i.id),
                recipient_id=i.recipient_id,
                status=i.status,
                amount=i.net_payout_amount,
                currency=i.currency,
                reason="payout_failed" if i.payout_status == InvestmentPayoutStatus.failed.value else "no_payout_initiated",
                created_at=i.created_at,
                payout_id=i.monime_payout_id,
            )
        )

    return rows

def attach_provider_status(rows: list[StuckPayout], payouts) -> list[StuckPayout]:
    """Fill ``provider_status`` from Monime for rows that carry a payout id."""
    for row in rows:
        if not row.payout_id:
            continue
        try:
            result = payouts.get_payout(row.payout_id)
        except MonimeError as e:
            logger.warning(
                "stuck_payout_lookup_failed",
                extra={"extra": {"payout_id": row.payout_id, "error": str(e), "status_code": e.status_code}},
            )
            row.provider_status = "lookup_failed"
            continue
        row.provider_status = result.get("status") or "unknown"
    return rows
