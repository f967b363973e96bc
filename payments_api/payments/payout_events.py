"""payout.completed / payout.failed reconciliation.

Cashouts, escrows and investments share one payout id namespace, so the
lookup order is fixed: cashout request, then escrow, then investment.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from payments_api.models.cashout import CashoutRequest
from payments_api.models.enums import (
    CashoutStatus,
    EscrowStatus,
    InvestmentPayoutStatus,
    InvestmentStatus,
    WalletEntryType,
    WalletSourceType,
)
from payments_api.models.escrow import DeliveryEscrow
from payments_api.models.notification import Notification
from payments_api.models.pitch import PitchInvestment
from payments_api.payments.notify import notify
from payments_api.payments.state import transition
from payments_api.payments.wallet import WalletMutation, apply_wallet_mutation
from payments_api.schemas.webhooks import MonimeEnvelope

logger = logging.getLogger(__name__)

GENERIC_FAILURE_REASON = "Payout failed"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _by_payout_id(db: Session, model: type, payout_id: str):
    return db.scalar(select(model).where(model.monime_payout_id == payout_id).limit(1))


def _failure_already_notified(db: Session, user_id: str, payout_id: str) -> bool:
    # escrow payout failures leave no status behind; the notification is the only record
    found = db.scalar(
        select(Notification.id)
        .where(
            Notification.user_id == user_id,
            Notification.type == "payout_failed",
            Notification.data["payout_id"].as_string() == payout_id,
        )
        .limit(1)
    )
    return found is not None


def failure_reason(detail: dict) -> str:
    return detail.get("message") or detail.get("code") or GENERIC_FAILURE_REASON


def handle_payout_completed(db: Session, envelope: MonimeEnvelope) -> None:
    payout_id = envelope.object.id
    if not payout_id:
        logger.error("payout_completed_missing_id", extra={"extra": {"event_id": envelope.event.id}})
        return

    cashout = _by_payout_id(db, CashoutRequest, payout_id)
    if cashout is not None:
        _finalize_cashout(db, cashout)
        return

    escrow = _by_payout_id(db, DeliveryEscrow, payout_id)
    if escrow is not None:
        final = EscrowStatus.completed if escrow.is_full_payment else EscrowStatus.partial_payout_completed
        changed = transition(
            db,
            DeliveryEscrow,
            escrow.id,
            {"status": final.value},
            not_from={EscrowStatus.completed.value, EscrowStatus.partial_payout_completed.value},
        )
        if changed:
            notify(
                db,
                user_id=escrow.creative_id,
                type="payout_completed",
                title="Payout Complete!",
                message=(
                    f"Your payout of {escrow.currency} {escrow.net_payout_amount:.2f} "
                    "has been sent to your account."
                ),
                data={"escrow_id": str(escrow.id), "amount": f"{escrow.net_payout_amount:.2f}"},
            )
        db.commit()
        logger.info(
            "payout_completed_escrow",
            extra={"extra": {"payout_id": payout_id, "escrow_id": str(escrow.id), "changed": changed}},
        )
        return

    investment = _by_payout_id(db, PitchInvestment, payout_id)
    if investment is not None:
        changed = transition(
            db,
            PitchInvestment,
            investment.id,
            {"status": InvestmentStatus.completed.value, "payout_status": InvestmentPayoutStatus.completed.value},
            not_from={InvestmentStatus.completed.value},
        )
        if changed:
            notify(
                db,
                user_id=investment.recipient_id,
                type="payout_completed",
                title="Pitch Funding Paid Out",
                message=(
                    f"Your pitch funding payout of {investment.currency} "
                    f"{investment.net_payout_amount:.2f} has been sent to your account."
                ),
                data={
                    "pitch_investment_id": str(investment.id),
                    "amount": f"{investment.net_payout_amount:.2f}",
                },
            )
        db.commit()
        logger.info(
            "payout_completed_investment",
            extra={"extra": {"payout_id": payout_id, "pitch_investment_id": str(investment.id)}},
        )
        return

    logger.error("payout_completed_orphaned", extra={"extra": {"payout_id": payout_id}})


def _finalize_cashout(db: Session, cashout: CashoutRequest) -> None:
    # a failed cashout already had its hold released by the rollback
    if cashout.status in {CashoutStatus.completed.value, CashoutStatus.failed.value}:
        logger.info(
            "cashout_completion_ignored",
            extra={"extra": {"cashout_request_id": str(cashout.id), "status": cashout.status}},
        )
        return

    amount = Decimal(cashout.amount)
    apply_wallet_mutation(
        db,
        WalletMutation(
            user_id=cashout.user_id,
            currency=cashout.currency,
            available_delta=Decimal("0"),
            pending_delta=-amount,
            entry_type=WalletEntryType.debit,
            amount=amount,
            source_type=WalletSourceType.cashout_request,
            source_id=str(cashout.id),
            idempotency_key=f"cashout:finalize:{cashout.id}",
            metadata={"cashout_request_id": str(cashout.id), "payout_id": cashout.monime_payout_id},
        ),
    )

    changed = transition(
        db,
        CashoutRequest,
        cashout.id,
        {"status": CashoutStatus.completed.value, "completed_at": _now_utc()},
        not_from={CashoutStatus.completed.value, CashoutStatus.failed.value},
    )
    if changed:
        notify(
            db,
            user_id=cashout.user_id,
            type="cashout_completed",
            title="Cashout Complete",
            message=f"Your cashout of {cashout.currency} {amount:.2f} has been sent to your account.",
            data={"cashout_request_id": str(cashout.id), "amount": f"{amount:.2f}"},
        )
    db.commit()
    logger.info("cashout_completed", extra={"extra": {"cashout_request_id": str(cashout.id)}})


def handle_payout_failed(db: Session, envelope: MonimeEnvelope) -> None:
    payout_id = envelope.object.id
    detail = envelope.failure_detail
    reason = failure_reason(detail)

    logger.error(
        "payout_failed",
        extra={"extra": {"payout_id": payout_id, "failure_code": detail.get("code"), "reason": reason}},
    )
    if not payout_id:
        return

    cashout = _by_payout_id(db, CashoutRequest, payout_id)
    if cashout is not None:
        _rollback_cashout(db, cashout, reason)
        return

    escrow = _by_payout_id(db, DeliveryEscrow, payout_id)
    if escrow is not None:
        if escrow.status in {EscrowStatus.completed.value, EscrowStatus.partial_payout_completed.value}:
            logger.warning(
                "payout_failed_after_completion",
                extra={"extra": {"payout_id": payout_id, "escrow_id": str(escrow.id)}},
            )
            return
        if _failure_already_notified(db, escrow.creative_id, payout_id):
            logger.info("payout_failed_already_notified", extra={"extra": {"payout_id": payout_id}})
            return

        # status left as-is for manual follow-up
        notify(
            db,
            user_id=escrow.creative_id,
            type="payout_failed",
            title="Payout Failed",
            message=(
                f"Your payout of {escrow.currency} {escrow.net_payout_amount:.2f} failed: {reason}. "
                "Please check your payment settings or contact support."
            ),
            data={
                "escrow_id": str(escrow.id),
                "payout_id": payout_id,
                "failure_code": detail.get("code"),
                "failure_message": detail.get("message"),
            },
        )
        db.commit()
        return

    investment = _by_payout_id(db, PitchInvestment, payout_id)
    if investment is not None:
        changed = transition(
            db,
            PitchInvestment,
            investment.id,
            {"payout_status": InvestmentPayoutStatus.failed.value},
            not_from={InvestmentPayoutStatus.completed.value, InvestmentPayoutStatus.failed.value},
            column="payout_status",
        )
        if not changed:
            logger.info(
                "payout_failed_ignored",
                extra={"extra": {"payout_id": payout_id, "pitch_investment_id": str(investment.id)}},
            )
            db.commit()
            return

        notify(
            db,
            user_id=investment.recipient_id,
            type="payout_failed",
            title="Payout Failed",
            message=(
                f"Your pitch funding payout of {investment.currency} {investment.net_payout_amount:.2f} "
                f"failed: {reason}. Please check your payment settings or contact support."
            ),
            data={
                "pitch_investment_id": str(investment.id),
                "failure_code": detail.get("code"),
                "failure_message": detail.get("message"),
            },
        )
        db.commit()
        return

    logger.warning("payout_failed_orphaned", extra={"extra": {"payout_id": payout_id}})


def _rollback_cashout(db: Session, cashout: CashoutRequest, reason: str) -> None:
    if cashout.status in {CashoutStatus.completed.value, CashoutStatus.failed.value}:
        logger.info(
            "cashout_failure_ignored",
            extra={"extra": {"cashout_request_id": str(cashout.id), "status": cashout.status}},
        )
        return

    amount = Decimal(cashout.amount)
    apply_wallet_mutation(
        db,
        WalletMutation(
            user_id=cashout.user_id,
            currency=cashout.currency,
            available_delta=amount,
            pending_delta=-amount,
            entry_type=WalletEntryType.release,
            amount=amount,
            source_type=WalletSourceType.cashout_request,
            source_id=str(cashout.id),
            idempotency_key=f"cashout:rollback:{cashout.id}",
            metadata={"cashout_request_id": str(cashout.id), "reason": reason},
        ),
    )

    changed = transition(
        db,
        CashoutRequest,
        cashout.id,
        {"status": CashoutStatus.failed.value, "failed_at": _now_utc(), "failure_reason": reason},
        not_from={CashoutStatus.completed.value, CashoutStatus.failed.value},
    )
    if changed:
        notify(
            db,
            user_id=cashout.user_id,
            type="cashout_failed",
            title="Cashout Failed",
            message=(
                f"Your cashout of {cashout.currency} {amount:.2f} failed: {reason}. "
                "The funds have been returned to your wallet balance."
            ),
            data={"cashout_request_id": str(cashout.id), "reason": reason},
        )
    db.commit()
    logger.info("cashout_rolled_back", extra={"extra": {"cashout_request_id": str(cashout.id)}})
