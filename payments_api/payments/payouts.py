"""Routes a settled payment to the recipient's wallet or to an external payout."""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payments_api.models.enums import (
    EscrowStatus,
    InvestmentPayoutStatus,
    InvestmentStatus,
    PayoutMode,
    WalletSourceType,
)
from payments_api.models.escrow import DeliveryEscrow
from payments_api.models.pitch import PitchInvestment
from payments_api.models.profile import Profile
from payments_api.payments.monime import MonimeError
from payments_api.payments.notify import notify
from payments_api.payments.state import transition
from payments_api.payments.wallet import (
    WalletError,
    build_payout_destination,
    credit_wallet_for_source,
    mask_account,
    to_wallet_currency,
)

logger = logging.getLogger(__name__)


class PayoutFlow(str, Enum):
    wallet = "wallet"
    auto = "auto"
    none = "none"


class PayoutSource(str, Enum):
    delivery_escrows = "delivery_escrows"
    pitch_investments = "pitch_investments"

    @property
    def wallet_source_type(self) -> WalletSourceType:
        if self is PayoutSource.delivery_escrows:
            return WalletSourceType.delivery_escrow
        return WalletSourceType.pitch_investment

    @property
    def record_key(self) -> str:
        return "escrow_id" if self is PayoutSource.delivery_escrows else "pitch_investment_id"


_PROVIDER_LABELS = {"momo": "mobile money", "bank": "bank account", "wallet": "wallet"}


def _mark_wallet_settled(db: Session, source: PayoutSource, source_id: uuid.UUID, is_full_payment: bool) -> None:
    if source is PayoutSource.delivery_escrows:
        final = EscrowStatus.completed if is_full_payment else EscrowStatus.partial_payout_completed
        changed = transition(
            db,
            DeliveryEscrow,
            source_id,
            {"status": final.value},
            from_statuses={EscrowStatus.payment_received.value, EscrowStatus.partial_payment_received.value},
        )
    else:
        changed = transition(
            db,
            PitchInvestment,
            source_id,
            {"status": InvestmentStatus.completed.value, "payout_status": InvestmentPayoutStatus.completed.value},
            from_statuses={InvestmentStatus.payment_received.value},
        )
    if not changed:
        logger.warning(
            "wallet_settlement_status_unchanged",
            extra={"extra": {"source": source.value, "source_id": str(source_id)}},
        )


def _record_payout(
    db: Session, source: PayoutSource, source_id: uuid.UUID, payout_id: str, is_full_payment: bool
) -> None:
    # the caller won the "received" transition, so it owns the record here
    if source is PayoutSource.delivery_escrows:
        values = {"monime_payout_id": payout_id}
        if is_full_payment:
            values["status"] = EscrowStatus.payout_initiated.value
        stmt = update(DeliveryEscrow).where(DeliveryEscrow.id == source_id).values(**values)
    else:
        stmt = (
            update(PitchInvestment)
            .where(PitchInvestment.id == source_id)
            .values(
                monime_payout_id=payout_id,
                status=InvestmentStatus.payout_initiated.value,
                payout_status=InvestmentPayoutStatus.initiated.value,
            )
        )
    db.execute(stmt.execution_options(synchronize_session=False))


def trigger_payout(
    db: Session,
    payouts,
    *,
    recipient_id: str,
    amount: Decimal,
    currency: str | None,
    source: PayoutSource,
    source_id: uuid.UUID,
    is_full_payment: bool,
    metadata: dict[str, str] | None = None,
    payer_id: str | None = None,
) -> PayoutFlow:
    """Pay ``recipient_id`` for a settled escrow or investment.

    ``payouts`` is anything with a ``create_payout`` compatible with
    :class:`~payments_api.payments.monime.MonimeClient`. Failures of the wallet
    credit or the payout call are logged and reported as ``PayoutFlow.none``;
    the source record then keeps its "received" status.
    """
    wallet_currency = to_wallet_currency(currency)
    amount = Decimal(amount)
    record_ref = {source.record_key: str(source_id)}
    log_ctx = {"source": source.value, "source_id": str(source_id), "recipient_id": recipient_id}

    profile = db.get(Profile, recipient_id)

    if profile is not None and profile.payout_mode == PayoutMode.wallet:
        try:
            with db.begin_nested():
                credit_wallet_for_source(
                    db,
                    recipient_id,
                    wallet_currency,
                    amount,
                    source.wallet_source_type,
                    str(source_id),
                    {"source": "payment_webhook", **(metadata or {})},
                )
                _mark_wallet_settled(db, source, source_id, is_full_payment)
        except (WalletError, SQLAlchemyError) as e:
            logger.error(
                "wallet_credit_failed",
                extra={"extra": {**log_ctx, "error": f"{e.__class__.__name__}: {e}"}},
            )
            return PayoutFlow.none

        notify(
            db,
            user_id=recipient_id,
            type="wallet_credited",
            title="Wallet Credited",
            message=f"Your wallet has been credited with {wallet_currency} {amount:.2f}.",
            data={**record_ref, "amount": f"{amount:.2f}", "currency": wallet_currency},
        )
        logger.info("payout_wallet_credited", extra={"extra": log_ctx})
        return PayoutFlow.wallet

    destination = build_payout_destination(profile) if profile is not None else None

    if destination is None:
        if profile is not None and profile.payment_provider and profile.payment_provider_id and profile.payment_account:
            logger.error(
                "payout_unknown_provider",
                extra={"extra": {**log_ctx, "provider": profile.payment_provider}},
            )
            return PayoutFlow.none

        logger.warning("payout_missing_payment_method", extra={"extra": log_ctx})
        what = "pitch funding payout" if source is PayoutSource.pitch_investments else "payout"
        notify(
            db,
            user_id=recipient_id,
            type="payout_action_required",
            title="Payment Method Required",
            message=(
                f"You have a pending {what} but no payment method configured. "
                "Please add your payment details in Settings."
            ),
            data=record_ref,
        )
        if source is PayoutSource.delivery_escrows and payer_id:
            notify(
                db,
                user_id=payer_id,
                type="payout_pending_setup",
                title="Payout Pending",
                message=(
                    "Your payment was received. The creative's payout is pending "
                    "until they add a payment method."
                ),
                data=record_ref,
            )
        return PayoutFlow.none

    try:
        payout = payouts.create_payout(
            amount=amount,
            currency=wallet_currency,
            destination=destination,
            metadata={**(metadata or {}), **record_ref},
            idempotency_key=f"{source.value}:payout:{source_id}",
        )
    except MonimeError as e:
        logger.error(
            "payout_creation_failed",
            extra={"extra": {**log_ctx, "error": str(e), "status_code": e.status_code}},
        )
        return PayoutFlow.none

    _record_payout(db, source, source_id, payout.id, is_full_payment)

    label = _PROVIDER_LABELS.get(destination.type, destination.type)
    notify(
        db,
        user_id=recipient_id,
        type="payout_initiated",
        title="Payout Initiated",
        message=(
            f"Your payout of {wallet_currency} {amount:.2f} to your {label} "
            f"{mask_account(profile.payment_account)} has been initiated."
        ),
        data={**record_ref, "payout_id": payout.id, "amount": f"{amount:.2f}"},
    )
    logger.info("payout_initiated", extra={"extra": {**log_ctx, "payout_id": payout.id}})
    return PayoutFlow.auto
