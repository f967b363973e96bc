from __future__ import annotations

import json
import logging

from anyio import to_thread
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from payments_api.config import settings
from payments_api.db import get_db
from payments_api.models.webhook_event import WebhookEvent
from payments_api.payments.monime import get_payout_client, verify_webhook_signature
from payments_api.payments.router import dispatch_event
from payments_api.ratelimit import rate_limit
from payments_api.schemas.webhooks import MonimeEnvelope, WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["webhooks"])

PROVIDER = "monime"

def _verify_monime_signature(payload_bytes: bytes, signature: str | None) -> None:
    secret = settings.MONIME_WEBHOOK_SECRET
    if not secret:
        if settings.MONIME_WEBHOOK_ALLOW_UNSIGNED:
            logger.warning("monime_webhook_unsigned_accepted")
            return
        logger.error("monime_webhook_secret_missing")
        raise HTTPException(status_code=503, detail="webhook_not_configured")

    if not verify_webhook_signature(payload_bytes, signature, secret):
        logger.warning("monime_webhook_invalid_signature", extra={"extra": {"has_signature": bool(signature)}})
        raise HTTPException(status_code=401, detail="invalid_signature")

def _parse_envelope(raw: bytes) -> tuple[dict, MonimeEnvelope]:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=400, detail="invalid_json")

    try:
        return payload, MonimeEnvelope.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="invalid_monime_event")

def _process_event(db: Session, payouts, envelope: MonimeEnvelope) -> None:
    dispatch_event(db, payouts, envelope)
    db.commit()

@router.post("/webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def monime_webhook(
    request: Request,
    db: Session = Depends(get_db),
    payouts=Depends(get_payout_client),
    monime_signature: str | None = Header(default=None, alias="x-monime-signature"),
    _: None = Depends(
        rate_limit(
            "webhooks:monime",
            limit_per_window=settings.rate_limit_webhooks_per_min,
            window_seconds=60,
        )
    ),
):
    raw = await request.body()
    _verify_monime_signature(raw, monime_signature)
    payload, envelope = _parse_envelope(raw)

    event_id = envelope.event.id
    event_name = envelope.event.name

    # the insert is the idempotency gate: (provider, event_id) is unique
    db.add(
        WebhookEvent(
            provider=PROVIDER,
            event_id=event_id,
            event_name=event_name,
            object_id=envelope.object.id,
            payload=payload,
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("monime_webhook_duplicate", extra={"extra": {"event_id": event_id, "event_name": event_name}})
        return {"received": True, "duplicate": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("monime_webhook_store_failed", extra={"extra": {"event_id": event_id}})
        raise HTTPException(status_code=500, detail="webhook_event_store_failed")

    try:
        # payout calls block on the provider; keep them off the event loop
        await to_thread.run_sync(_process_event, db, payouts, envelope)
    except Exception:
        # the event row is already committed; a redelivery will be short-circuited as a duplicate
        db.rollback()
        logger.exception(
            "monime_webhook_processing_failed",
            extra={"extra": {"event_id": event_id, "event_name": event_name}},
        )
        raise HTTPException(status_code=500, detail="webhook_processing_failed")

    logger.info("monime_webhook_processed", extra={"extra": {"event_id": event_id, "event_name": event_name}})
    return {"received": True}
