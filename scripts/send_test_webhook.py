"""Send a signed Monime-style webhook to a running api.

    python scripts/send_test_webhook.py checkout_completed <escrow_id>
    python scripts/send_test_webhook.py pitch_completed <pitch_investment_id>
    python scripts/send_test_webhook.py payout_completed <payout_id>
    python scripts/send_test_webhook.py payout_failed <payout_id>
"""
from __future__ import annotations

import hashlib
import hmac
import json
import os
import sys
import uuid

import requests
from rich import print

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

def build_payload(kind: str, object_id: str) -> dict:
    event_id = f"evt-{uuid.uuid4()}"
    if kind == "checkout_completed":
        return {
            "event": {"name": "checkout_session.completed", "id": event_id},
            "object": {"id": f"cs-{uuid.uuid4()}", "type": "checkout_session"},
            "data": {"status": "completed", "metadata": {"escrow_id": object_id}},
        }
    if kind == "pitch_completed":
        return {
            "event": {"name": "checkout_session.completed", "id": event_id},
            "object": {"id": f"cs-{uuid.uuid4()}", "type": "checkout_session"},
            "data": {"status": "completed", "metadata": {"pitch_investment_id": object_id}},
        }
    if kind == "payout_completed":
        return {
            "event": {"name": "payout.completed", "id": event_id},
            "object": {"id": object_id, "type": "payout"},
            "data": {"status": "completed"},
        }
    if kind == "payout_failed":
        return {
            "event": {"name": "payout.failed", "id": event_id},
            "object": {"id": object_id, "type": "payout"},
            "data": {
                "status": "failed",
                "failureDetail": {"code": "INSUFFICIENT_FUNDS", "message": "Simulated payout failure for testing"},
            },
        }
    raise ValueError(f"unknown event kind: {kind}")

def main() -> int:
    if len(sys.argv) != 3:
        print(__doc__)
        return 1

    secret = os.getenv("MONIME_WEBHOOK_SECRET")
    if not secret:
        print("[red]MONIME_WEBHOOK_SECRET not set[/red]")
        return 1

    try:
        payload = build_payload(sys.argv[1], sys.argv[2])
    except ValueError as e:
        print(f"[red]{e}[/red]")
        return 1

    raw = json.dumps(payload).encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()

    r = requests.post(
        f"{BASE}/api/payments/webhook",
        data=raw,
        headers={"content-type": "application/json", "x-monime-signature": signature},
        timeout=10,
    )
    print(f"[bold]{r.status_code}[/bold] {r.text}")
    return 0 if r.ok else 1

if __name__ == "__main__":
    raise SystemExit(main())
