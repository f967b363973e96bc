from decimal import Decimal

import pytest
from sqlalchemy import select

from conftest import count, payout_event
from payments_api.models import CashoutRequest, Notification, UserWallet, WalletLedgerEntry

def _wallet(db, user_id: str = "user_creative") -> UserWallet:
    w = db.scalar(select(UserWallet).where(UserWallet.user_id == user_id))
    db.refresh(w)
    return w

def test_cashout_completed_releases_pending_hold(post_event, db_session, make_cashout):
    cashout = make_cashout(amount=Decimal("50.00"), available=Decimal("10.00"), payout_id="po_cash_1")

    r = post_event(payout_event("payout.completed", "po_cash_1"))
    assert r.status_code == 200

    db_session.refresh(cashout)
    assert cashout.status == "completed"
    assert cashout.completed_at is not None

    w = _wallet(db_session)
    assert w.available_balance == Decimal("10.00")
    assert w.pending_balance == Decimal("0")

    entry = db_session.scalar(select(WalletLedgerEntry).where(WalletLedgerEntry.source_id == str(cashout.id)))
    assert entry.entry_type == "debit"
    assert entry.idempotency_key == f"cashout:finalize:{cashout.id}"
    assert entry.pending_delta == Decimal("-50.00")
    assert entry.available_delta == Decimal("0")

    assert count(db_session, Notification, Notification.type == "cashout_completed") == 1

def test_cashout_match_wins_over_escrow_with_same_payout_id(post_event, db_session, make_cashout, make_escrow):
    make_cashout(payout_id="po_shared")
    escrow = make_escrow(status="payout_initiated", monime_payout_id="po_shared")

    post_event(payout_event("payout.completed", "po_shared"))

    db_session.refresh(escrow)
    assert escrow.status == "payout_initiated"
    assert count(db_session, Notification, Notification.type == "payout_completed") == 0
    assert count(db_session, Notification, Notification.type == "cashout_completed") == 1

@pytest.mark.parametrize(
    "percentage,final_status",
    [(100, "completed"), (50, "partial_payout_completed")],
)
def test_escrow_payout_completed(post_event, db_session, make_escrow, percentage, final_status):
    escrow = make_escrow(percentage=percentage, status="payout_initiated", monime_payout_id="po_escrow_1")

    r = post_event(payout_event("payout.completed", "po_escrow_1"))
    assert r.status_code == 200

    db_session.refresh(escrow)
    assert escrow.status == final_status
    note = db_session.scalar(select(Notification).where(Notification.type == "payout_completed"))
    assert note.user_id == "user_creative"
    assert "SLE 90.00" in note.message

def test_escrow_payout_completed_twice_notifies_once(post_event, db_session, make_escrow):
    make_escrow(status="payout_initiated", monime_payout_id="po_escrow_2")

    post_event(payout_event("payout.completed", "po_escrow_2", event_id="evt_1"))
    post_event(payout_event("payout.completed", "po_escrow_2", event_id="evt_2"))

    assert count(db_session, Notification, Notification.type == "payout_completed") == 1

def test_investment_payout_completed(post_event, db_session, make_investment):
    inv = make_investment(status="payout_initiated", monime_payout_id="po_inv_1")

    post_event(payout_event("payout.completed", "po_inv_1"))

    db_session.refresh(inv)
    assert inv.status == "completed"
    assert inv.payout_status == "completed"
    assert count(db_session, Notification, Notification.user_id == "user_founder") == 1

def test_orphaned_payout_events_are_acknowledged(post_event, db_session):
    for name in ("payout.completed", "payout.failed"):
        r = post_event(payout_event(name, "po_nobody"))
        assert r.status_code == 200
        assert r.json() == {"received": True}
    assert count(db_session, Notification) == 0

def test_cashout_failed_returns_funds_exactly_once(post_event, db_session, make_cashout):
    cashout = make_cashout(amount=Decimal("50.00"), available=Decimal("10.00"), payout_id="po_cash_fail")
    failure = {"code": "INSUFFICIENT_FUNDS", "message": "Provider float too low"}

    r1 = post_event(payout_event("payout.failed", "po_cash_fail", event_id="evt_f1", failure=failure))
    assert r1.status_code == 200
    r2 = post_event(payout_event("payout.failed", "po_cash_fail", event_id="evt_f2", failure=failure))
    assert r2.status_code == 200

    db_session.refresh(cashout)
    assert cashout.status == "failed"
    assert cashout.failed_at is not None
    assert cashout.failure_reason == "Provider float too low"

    w = _wallet(db_session)
    assert w.available_balance == Decimal("60.00")
    assert w.pending_balance == Decimal("0")

    entries = db_session.scalars(select(WalletLedgerEntry).where(WalletLedgerEntry.source_id == str(cashout.id))).all()
    assert len(entries) == 1
    assert entries[0].entry_type == "release"
    assert entries[0].idempotency_key == f"cashout:rollback:{cashout.id}"
    assert entries[0].available_delta == Decimal("50.00")
    assert entries[0].pending_delta == Decimal("-50.00")

    note = db_session.scalar(select(Notification).where(Notification.type == "cashout_failed"))
    assert "returned to your wallet" in note.message
    assert count(db_session, Notification, Notification.type == "cashout_failed") == 1

@pytest.mark.parametrize(
    "failure,reason",
    [
        ({"code": "ACCOUNT_CLOSED"}, "ACCOUNT_CLOSED"),
        ({}, "Payout failed"),
        (None, "Payout failed"),
    ],
)
def test_cashout_failure_reason_fallbacks(post_event, db_session, make_cashout, failure, reason):
    cashout = make_cashout(payout_id="po_cash_reason")

    post_event(payout_event("payout.failed", "po_cash_reason", failure=failure))

    db_session.refresh(cashout)
    assert cashout.status == "failed"
    assert cashout.failure_reason == reason

def test_completed_cashout_ignores_late_failure(post_event, db_session, make_cashout):
    cashout = make_cashout(payout_id="po_cash_late")

    post_event(payout_event("payout.completed", "po_cash_late"))
    post_event(payout_event("payout.failed", "po_cash_late", failure={"message": "late"}))

    db_session.refresh(cashout)
    assert cashout.status == "completed"
    w = _wallet(db_session)
    assert w.available_balance == Decimal("10.00")
    assert w.pending_balance == Decimal("0")

def test_escrow_payout_failed_notifies_without_status_change(post_event, db_session, make_escrow):
    escrow = make_escrow(status="payout_initiated", monime_payout_id="po_escrow_fail")

    post_event(
        payout_event("payout.failed", "po_escrow_fail", failure={"code": "INVALID_ACCOUNT", "message": "Unknown MSISDN"})
    )

    db_session.refresh(escrow)
    assert escrow.status == "payout_initiated"
    note = db_session.scalar(select(Notification).where(Notification.type == "payout_failed"))
    assert note.user_id == "user_creative"
    assert "Unknown MSISDN" in note.message
    assert note.data["failure_code"] == "INVALID_ACCOUNT"

def test_investment_payout_failed_marks_payout_status(post_event, db_session, make_investment):
    inv = make_investment(status="payout_initiated", monime_payout_id="po_inv_fail")

    post_event(payout_event("payout.failed", "po_inv_fail", failure={"message": "Bank offline"}))

    db_session.refresh(inv)
    assert inv.status == "payout_initiated"
    assert inv.payout_status == "failed"
    note = db_session.scalar(select(Notification).where(Notification.type == "payout_failed"))
    assert note.user_id == "user_founder"
    assert "Bank offline" in note.message

def test_cashouts_are_untouched_by_unrelated_payouts(post_event, db_session, make_cashout, make_escrow):
    cashout = make_cashout(payout_id="po_cash_other")
    make_escrow(status="payout_initiated", monime_payout_id="po_escrow_other")

    post_event(payout_event("payout.completed", "po_escrow_other"))

    db_session.refresh(cashout)
    assert cashout.status == "initiated"
    assert count(db_session, CashoutRequest, CashoutRequest.status == "completed") == 0

def test_failed_cashout_ignores_late_completion(post_event, db_session, make_cashout):
    cashout_a = make_cashout(amount=Decimal("50.00"), available=Decimal("0"), payout_id="po_a")
    cashout_b = CashoutRequest(
        user_id="user_creative", amount=Decimal("50.00"), currency="SLE", status="initiated", monime_payout_id="po_b"
    )
    db_session.add(cashout_b)
    w = _wallet(db_session)
    w.pending_balance = Decimal("100.00")
    db_session.commit()

    assert post_event(payout_event("payout.failed", "po_a", failure={"message": "Rejected"})).status_code == 200
    assert post_event(payout_event("payout.completed", "po_a")).status_code == 200

    db_session.refresh(cashout_a)
    db_session.refresh(cashout_b)
    assert cashout_a.status == "failed"
    assert cashout_b.status == "initiated"

    w = _wallet(db_session)
    assert w.available_balance == Decimal("50.00")
    # the hold for po_b is untouched
    assert w.pending_balance == Decimal("50.00")

    entries = db_session.scalars(
        select(WalletLedgerEntry).where(WalletLedgerEntry.source_id == str(cashout_a.id))
    ).all()
    assert [e.entry_type for e in entries] == ["release"]
    assert count(db_session, Notification, Notification.type == "cashout_completed") == 0

def test_investment_failure_after_completion_is_ignored(post_event, db_session, make_investment):
    inv = make_investment(status="payout_initiated", monime_payout_id="po_inv_late")

    post_event(payout_event("payout.completed", "po_inv_late"))
    post_event(payout_event("payout.failed", "po_inv_late", failure={"message": "late"}))
    post_event(payout_event("payout.failed", "po_inv_late", failure={"message": "late"}))

    db_session.refresh(inv)
    assert inv.status == "completed"
    assert inv.payout_status == "completed"
    assert count(db_session, Notification, Notification.type == "payout_failed") == 0

def test_repeated_investment_failure_notifies_once(post_event, db_session, make_investment):
    inv = make_investment(status="payout_initiated", monime_payout_id="po_inv_twice")

    post_event(payout_event("payout.failed", "po_inv_twice", event_id="evt_if1", failure={"code": "TIMEOUT"}))
    post_event(payout_event("payout.failed", "po_inv_twice", event_id="evt_if2", failure={"code": "TIMEOUT"}))

    db_session.refresh(inv)
    assert inv.payout_status == "failed"
    assert count(db_session, Notification, Notification.type == "payout_failed") == 1

def test_repeated_escrow_failure_notifies_once(post_event, db_session, make_escrow):
    make_escrow(status="payout_initiated", monime_payout_id="po_escrow_twice")

    post_event(payout_event("payout.failed", "po_escrow_twice", event_id="evt_ef1", failure={"message": "x"}))
    post_event(payout_event("payout.failed", "po_escrow_twice", event_id="evt_ef2", failure={"message": "x"}))

    note = db_session.scalar(select(Notification).where(Notification.type == "payout_failed"))
    assert note.data["payout_id"] == "po_escrow_twice"
    assert count(db_session, Notification, Notification.type == "payout_failed") == 1

def test_escrow_failure_after_completion_is_ignored(post_event, db_session, make_escrow):
    escrow = make_escrow(status="payout_initiated", monime_payout_id="po_escrow_late")

    post_event(payout_event("payout.completed", "po_escrow_late"))
    post_event(payout_event("payout.failed", "po_escrow_late", failure={"message": "late"}))

    db_session.refresh(escrow)
    assert escrow.status == "completed"
    assert count(db_session, Notification, Notification.type == "payout_failed") == 0
