"""Monime payout API client and webhook signature check."""
from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx

from payments_api.config import settings

logger = logging.getLogger(__name__)


class MonimeError(Exception):
    """Raised when a payout call cannot be completed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PayoutDestination:
    type: str
    provider_id: str
    phone_number: str | None = None
    account_number: str | None = None
    wallet_id: str | None = None

    def to_api(self) -> dict[str, str]:
        body = {"type": self.type, "providerId": self.provider_id}
        if self.type == "momo" and self.phone_number:
            body["phoneNumber"] = self.phone_number
        elif self.type == "bank" and self.account_number:
            body["accountNumber"] = self.account_number
        elif self.type == "wallet" and self.wallet_id:
            body["walletId"] = self.wallet_id
        return body


@dataclass(frozen=True)
class PayoutResult:
    id: str
    status: str | None = None


def to_minor_units(amount: Decimal | float | int) -> int:
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str) -> bool:
    if not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip())


class MonimeClient:
    def __init__(
        self,
        *,
        access_token: str | None = None,
        space_id: str | None = None,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        # None means "use settings"; missing credentials only fail when a call is made
        self.access_token = access_token or settings.MONIME_ACCESS_TOKEN
        self.space_id = space_id or settings.MONIME_SPACE_ID
        self.api_version = api_version or settings.MONIME_API_VERSION
        self._http = httpx.Client(
            base_url=base_url or settings.MONIME_API_BASE,
            timeout=timeout if timeout is not None else settings.monime_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        if not self.access_token or not self.space_id:
            raise MonimeError("monime credentials not configured")
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Monime-Space-Id": self.space_id,
            "Monime-Version": self.api_version,
        }
        if idempotency_key is not None:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, *, idempotency_key: str | None = None, **kwargs: Any) -> dict:
        headers = self._headers(idempotency_key)
        try:
            res = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise MonimeError(f"monime request failed: {type(e).__name__}: {e}") from e

        if res.status_code >= 400:
            raise MonimeError(
                f"monime {method} {path} failed ({res.status_code}): {res.text[:500]}",
                status_code=res.status_code,
            )
        try:
            body = res.json()
        except ValueError as e:
            raise MonimeError("monime returned a non-json body", status_code=res.status_code) from e
        return body.get("result") or {}

    def create_payout(
        self,
        *,
        amount: Decimal,
        currency: str,
        destination: PayoutDestination,
        metadata: dict[str, str] | None = None,
        idempotency_key: str | None = None,
    ) -> PayoutResult:
        body = {
            "amount": {"currency": currency, "value": to_minor_units(amount)},
            "destination": destination.to_api(),
            "metadata": metadata or {},
        }
        result = self._request(
            "POST",
            "/v1/payouts",
            idempotency_key=idempotency_key or str(uuid.uuid4()),
            json=body,
        )
        payout_id = result.get("id")
        if not payout_id:
            raise MonimeError("monime payout response missing id")

        logger.info(
            "monime_payout_created",
            extra={"extra": {"payout_id": payout_id, "status": result.get("status")}},
        )
        return PayoutResult(id=payout_id, status=result.get("status"))

    def get_payout(self, payout_id: str) -> dict:
        return self._request("GET", f"/v1/payouts/{payout_id}")


def get_payout_client():
    client = MonimeClient()
    try:
        yield client
    finally:
        client.close()
