from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payments_api.config import settings
from payments_api.models.enums import ProviderType, WalletEntryType, WalletSourceType
from payments_api.models.profile import Profile
from payments_api.models.wallet import UserWallet, WalletLedgerEntry
from payments_api.payments.monime import PayoutDestination

logger = logging.getLogger(__name__)


class WalletError(Exception):
    pass


@dataclass
class WalletMutation:
    user_id: str
    currency: str
    available_delta: Decimal
    pending_delta: Decimal
    entry_type: WalletEntryType
    amount: Decimal
    source_type: WalletSourceType
    source_id: str | None
    idempotency_key: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def mask_account(value: str | None) -> str:
    if not value:
        return "****"
    if len(value) <= 4:
        return f"****{value}"
    return f"****{value[-4:]}"


def to_wallet_currency(value: str | None) -> str:
    return (value or settings.default_currency).upper()


def build_wallet_idempotency_key(parts: Iterable[Any]) -> str:
    payload = "|".join("" if p is None else str(p) for p in parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def build_payout_destination(profile: Profile) -> PayoutDestination | None:
    if not profile.payment_provider or not profile.payment_provider_id or not profile.payment_account:
        return None

    provider = profile.payment_provider
    if provider == ProviderType.momo:
        return PayoutDestination(provider, profile.payment_provider_id, phone_number=profile.payment_account)
    if provider == ProviderType.bank:
        return PayoutDestination(provider, profile.payment_provider_id, account_number=profile.payment_account)
    if provider == ProviderType.wallet:
        return PayoutDestination(provider, profile.payment_provider_id, wallet_id=profile.payment_account)
    return None


def _find_entry(db: Session, idempotency_key: str) -> WalletLedgerEntry | None:
    return db.scalar(select(WalletLedgerEntry).where(WalletLedgerEntry.idempotency_key == idempotency_key))


def _get_or_create_wallet(db: Session, user_id: str, currency: str) -> UserWallet:
    wallet = db.scalar(select(UserWallet).where(UserWallet.user_id == user_id, UserWallet.currency == currency))
    if wallet is None:
        wallet = UserWallet(
            user_id=user_id,
            currency=currency,
            available_balance=Decimal("0"),
            pending_balance=Decimal("0"),
        )
        db.add(wallet)
        db.flush()
    return wallet


def apply_wallet_mutation(db: Session, mutation: WalletMutation) -> uuid.UUID:
    """Apply a balance change and append its ledger line.

    A mutation whose idempotency key is already in the ledger is not applied
    again; the existing entry id is returned. Balances may not go negative.
    """
    currency = to_wallet_currency(mutation.currency)
    key = mutation.idempotency_key

    if key:
        existing = _find_entry(db, key)
        if existing is not None:
            logger.info(
                "wallet_mutation_duplicate",
                extra={"extra": {"idempotency_key": key, "entry_id": str(existing.id)}},
            )
            return existing.id

    available = Decimal(mutation.available_delta)
    pending = Decimal(mutation.pending_delta)

    try:
        with db.begin_nested():
            wallet = _get_or_create_wallet(db, mutation.user_id, currency)

            res = db.execute(
                update(UserWallet)
                .where(
                    UserWallet.id == wallet.id,
                    UserWallet.available_balance + available >= 0,
                    UserWallet.pending_balance + pending >= 0,
                )
                .values(
                    available_balance=UserWallet.available_balance + available,
                    pending_balance=UserWallet.pending_balance + pending,
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise WalletError(
                    f"insufficient wallet balance for {mutation.entry_type.value} of {mutation.amount} {currency}"
                )

            entry = WalletLedgerEntry(
                wallet_id=wallet.id,
                user_id=mutation.user_id,
                currency=currency,
                available_delta=available,
                pending_delta=pending,
                entry_type=mutation.entry_type.value,
                amount=Decimal(mutation.amount),
                source_type=mutation.source_type.value,
                source_id=mutation.source_id,
                idempotency_key=key,
                meta=mutation.metadata,
            )
            db.add(entry)
            db.flush()
    except IntegrityError as e:
        # lost a race with a concurrent delivery carrying the same key
        existing = _find_entry(db, key) if key else None
        if existing is not None:
            return existing.id
        raise WalletError(f"wallet mutation failed: {e.orig}") from e

    db.expire(wallet)
    logger.info(
        "wallet_mutation_applied",
        extra={
            "extra": {
                "user_id": mutation.user_id,
                "currency": currency,
                "entry_type": mutation.entry_type.value,
                "available_delta": str(available),
                "pending_delta": str(pending),
                "source_type": mutation.source_type.value,
                "source_id": mutation.source_id,
            }
        },
    )
    return entry.id


def credit_wallet_for_source(
    db: Session,
    user_id: str,
    currency: str,
    amount: Decimal,
    source_type: WalletSourceType,
    source_id: str,
    metadata: dict[str, Any] | None = None,
) -> uuid.UUID:
    amount = Decimal(amount)
    wallet_currency = to_wallet_currency(currency)
    key = build_wallet_idempotency_key(
        ["wallet-credit", source_type.value, source_id, user_id, wallet_currency, f"{amount:.2f}"]
    )
    return apply_wallet_mutation(
        db,
        WalletMutation(
            user_id=user_id,
            currency=wallet_currency,
            available_delta=amount,
            pending_delta=Decimal("0"),
            entry_type=WalletEntryType.credit,
            amount=amount,
            source_type=source_type,
            source_id=source_id,
            idempotency_key=key,
            metadata=metadata or {},
        ),
    )
