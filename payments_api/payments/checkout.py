from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from payments_api.models.enums import EscrowStatus, InvestmentStatus, PaymentType, SubmissionStatus
from payments_api.models.escrow import DeliveryEscrow
from payments_api.models.pitch import Pitch, PitchInvestment
from payments_api.models.transaction import Transaction
from payments_api.models.work import Opportunity, WorkSubmission
from payments_api.payments.notify import notify
from payments_api.payments.payouts import PayoutFlow, PayoutSource, trigger_payout
from payments_api.payments.state import parse_uuid, transition
from payments_api.payments.wallet import to_wallet_currency
from payments_api.schemas.webhooks import MonimeEnvelope

logger = logging.getLogger(__name__)

ESCROW_PROCESSED_STATUSES = {
    EscrowStatus.payment_received.value,
    EscrowStatus.partial_payment_received.value,
    EscrowStatus.payout_initiated.value,
    EscrowStatus.completed.value,
    EscrowStatus.partial_payout_completed.value,
}

INVESTMENT_PROCESSED_STATUSES = {
    InvestmentStatus.payment_received.value,
    InvestmentStatus.payout_initiated.value,
    InvestmentStatus.completed.value,
}


def handle_checkout_completed(db: Session, payouts, envelope: MonimeEnvelope) -> None:
    metadata = envelope.metadata
    session_id = envelope.object.id

    if metadata.get("pitch_investment_id"):
        complete_pitch_investment(db, payouts, metadata["pitch_investment_id"], session_id)
        return

    escrow_id = metadata.get("escrow_id")
    if not escrow_id:
        # retrying will not make the metadata appear
        logger.error("checkout_missing_escrow_id", extra={"extra": {"checkout_session_id": session_id}})
        return

    complete_escrow_payment(db, payouts, escrow_id, session_id)


def _escrow_transaction_exists(db: Session, escrow_id: uuid.UUID, payment_type: PaymentType) -> bool:
    found = db.scalar(
        select(Transaction.id).where(
            Transaction.escrow_id == escrow_id,
            Transaction.payment_type == payment_type.value,
        )
    )
    return found is not None


def complete_escrow_payment(db: Session, payouts, raw_escrow_id: str, session_id: str | None) -> PayoutFlow | None:
    escrow_id = parse_uuid(raw_escrow_id)
    escrow = db.get(DeliveryEscrow, escrow_id) if escrow_id else None
    if escrow is None:
        logger.error(
            "checkout_escrow_not_found",
            extra={"extra": {"escrow_id": raw_escrow_id, "checkout_session_id": session_id}},
        )
        return None

    if escrow.status in ESCROW_PROCESSED_STATUSES:
        logger.info("checkout_escrow_already_processed", extra={"extra": {"escrow_id": str(escrow.id)}})
        return None

    is_full = escrow.is_full_payment
    received = EscrowStatus.payment_received if is_full else EscrowStatus.partial_payment_received

    if not transition(
        db,
        DeliveryEscrow,
        escrow.id,
        {"status": received.value, "files_released": is_full},
        not_from=ESCROW_PROCESSED_STATUSES,
    ):
        logger.info("checkout_escrow_already_processed", extra={"extra": {"escrow_id": str(escrow.id)}})
        return None

    if is_full and escrow.submission_id:
        db.execute(
            update(WorkSubmission)
            .where(WorkSubmission.id == escrow.submission_id)
            .values(status=SubmissionStatus.approved.value)
            .execution_options(synchronize_session=False)
        )

    payment_type = PaymentType.full if is_full else PaymentType.partial_50
    if not _escrow_transaction_exists(db, escrow.id, payment_type):
        db.add(
            Transaction(
                opportunity_id=escrow.opportunity_id,
                application_id=escrow.application_id,
                payer_id=escrow.employer_id,
                payee_id=escrow.creative_id,
                amount=escrow.payment_amount,
                currency=to_wallet_currency(escrow.currency),
                platform_fee=escrow.platform_fee,
                net_amount=escrow.net_payout_amount,
                monime_checkout_session_id=session_id,
                payment_type=payment_type.value,
                escrow_id=escrow.id,
                status="completed",
            )
        )
    # payment state is durable before any money moves out
    db.commit()

    escrow_id = escrow.id
    creative_id = escrow.creative_id
    employer_id = escrow.employer_id
    submission_id = str(escrow.submission_id) if escrow.submission_id else None
    net_amount = escrow.net_payout_amount

    flow = trigger_payout(
        db,
        payouts,
        recipient_id=creative_id,
        amount=net_amount,
        currency=escrow.currency,
        source=PayoutSource.delivery_escrows,
        source_id=escrow_id,
        is_full_payment=is_full,
        metadata={"creative_id": creative_id},
        payer_id=employer_id,
    )
    db.commit()

    opportunity = db.get(Opportunity, escrow.opportunity_id) if escrow.opportunity_id else None
    opp_title = opportunity.title if opportunity else "a project"
    data = {"escrow_id": str(escrow_id), "submission_id": submission_id}

    notify(
        db,
        user_id=employer_id,
        type="payment_completed",
        title="Payment Successful",
        message=(
            f'Your payment for "{opp_title}" is complete. You now have full access to the delivered files.'
            if is_full
            else f'Your 50% compensation payment for "{opp_title}" is complete.'
        ),
        data=data,
    )

    payout_note = (
        "The payout has been credited to your wallet."
        if flow is PayoutFlow.wallet
        else "Payout is being processed."
    )
    notify(
        db,
        user_id=creative_id,
        type="payment_received",
        title="Payment Received!" if is_full else "50% Compensation Received",
        message=(
            f'The employer has paid for your work on "{opp_title}". {payout_note}'
            if is_full
            else f'You have received 50% compensation for your time on "{opp_title}". {payout_note}'
        ),
        data={**data, "amount": f"{net_amount:.2f}", "payout_flow": flow.value},
    )
    db.commit()

    logger.info(
        "checkout_escrow_completed",
        extra={"extra": {"escrow_id": str(escrow_id), "payment_type": payment_type.value, "payout_flow": flow.value}},
    )
    return flow


def complete_pitch_investment(
    db: Session, payouts, raw_investment_id: str, session_id: str | None
) -> PayoutFlow | None:
    investment_id = parse_uuid(raw_investment_id)
    investment = db.get(PitchInvestment, investment_id) if investment_id else None
    if investment is None:
        logger.error(
            "checkout_investment_not_found",
            extra={"extra": {"pitch_investment_id": raw_investment_id, "checkout_session_id": session_id}},
        )
        return None

    if investment.status in INVESTMENT_PROCESSED_STATUSES:
        logger.info(
            "checkout_investment_already_processed",
            extra={"extra": {"pitch_investment_id": str(investment.id)}},
        )
        return None

    if not transition(
        db,
        PitchInvestment,
        investment.id,
        {"status": InvestmentStatus.payment_received.value},
        not_from=INVESTMENT_PROCESSED_STATUSES,
    ):
        logger.info(
            "checkout_investment_already_processed",
            extra={"extra": {"pitch_investment_id": str(investment.id)}},
        )
        return None

    # single SQL increment; concurrent investments in one pitch must not lose updates
    db.execute(
        update(Pitch)
        .where(Pitch.id == investment.pitch_id)
        .values(total_funded=Pitch.total_funded + investment.amount)
        .execution_options(synchronize_session=False)
    )

    existing = db.scalar(select(Transaction.id).where(Transaction.pitch_investment_id == investment.id))
    if existing is None:
        db.add(
            Transaction(
                payer_id=investment.investor_id,
                payee_id=investment.recipient_id,
                amount=investment.amount,
                currency=to_wallet_currency(investment.currency),
                platform_fee=investment.platform_fee,
                net_amount=investment.net_payout_amount,
                monime_checkout_session_id=session_id or investment.monime_checkout_session_id,
                payment_type=PaymentType.pitch_investment.value,
                pitch_investment_id=investment.id,
                status="completed",
            )
        )
    db.commit()

    investment_id = investment.id
    investor_id = investment.investor_id
    recipient_id = investment.recipient_id
    currency = to_wallet_currency(investment.currency)
    amount = investment.amount
    net_amount = investment.net_payout_amount

    flow = trigger_payout(
        db,
        payouts,
        recipient_id=recipient_id,
        amount=net_amount,
        currency=currency,
        source=PayoutSource.pitch_investments,
        source_id=investment_id,
        is_full_payment=True,
        metadata={"recipient_id": recipient_id},
    )
    db.commit()

    pitch = db.get(Pitch, investment.pitch_id)
    pitch_title = pitch.title if pitch else "a pitch"
    data = {"pitch_investment_id": str(investment_id), "pitch_id": str(investment.pitch_id)}

    notify(
        db,
        user_id=investor_id,
        type="investment_confirmed",
        title="Investment Confirmed",
        message=f'Your investment of {currency} {amount:.2f} in "{pitch_title}" is confirmed.',
        data=data,
    )

    payout_note = (
        "The funds have been credited to your wallet."
        if flow is PayoutFlow.wallet
        else "Payout is being processed."
    )
    notify(
        db,
        user_id=recipient_id,
        type="pitch_funded",
        title="Pitch Funded!",
        message=f'"{pitch_title}" received {currency} {amount:.2f} in funding. {payout_note}',
        data={**data, "amount": f"{net_amount:.2f}", "payout_flow": flow.value},
    )
    db.commit()

    logger.info(
        "checkout_investment_completed",
        extra={"extra": {"pitch_investment_id": str(investment_id), "payout_flow": flow.value}},
    )
    return flow
