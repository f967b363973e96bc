#!/usr/bin/env python3
"""List payouts that need an operator: read-only, nothing is re-driven."""
from __future__ import annotations

import argparse
import json

from payments_api.db import SessionLocal
from payments_api.payments.monime import MonimeClient
from payments_api.payments.stuck import attach_provider_status, find_stuck_payouts

def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--json", action="store_true", help="print json lines instead of a table")
    ap.add_argument("--provider", action="store_true", help="look up each payout id on monime")
    args = ap.parse_args()

    with SessionLocal() as db:
        rows = find_stuck_payouts(db)

    if args.provider:
        client = MonimeClient()
        try:
            attach_provider_status(rows, client)
        finally:
            client.close()

    if not rows:
        print("no stuck payouts")
        return 0

    if args.json:
        for r in rows:
            print(json.dumps({**r.__dict__, "amount": str(r.amount), "created_at": str(r.created_at)}))
        return 0

    # print markdown table
    print("| source | record | recipient | status | amount | reason | provider |")
    print("|:---|:---|:---|:---|---:|:---|:---|")
    for r in rows:
        print(f"| {r.source} | {r.record_id} | {r.recipient_id} | {r.status} | {r.currency or ''} {r.amount} | {r.reason} | {r.provider_status or '-'} |")

    return 0

if __name__ == "__main__":
    raise SystemExit(main())
