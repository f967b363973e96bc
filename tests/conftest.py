import hashlib
import hmac
import json
import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payments_api.config import settings
from payments_api.db import get_db
from payments_api.main import create_app
from payments_api.models import (
    Base,
    CashoutRequest,
    DeliveryEscrow,
    Opportunity,
    Pitch,
    PitchInvestment,
    Profile,
    UserWallet,
    WorkSubmission,
)
from payments_api.payments.monime import PayoutResult, get_payout_client

WEBHOOK_SECRET = "whsec_test"

class FakePayoutClient:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.fail_with: Exception | None = None

    def create_payout(self, **kwargs) -> PayoutResult:
        self.calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        return PayoutResult(id=f"po_test_{len(self.calls)}", status="pending")

def sign(raw: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()

def checkout_event(metadata: dict, event_id: str | None = None, session_id: str = "cs_test_1") -> dict:
    return {
        "event": {"name": "checkout_session.completed", "id": event_id or f"evt_{uuid.uuid4().hex}"},
        "object": {"id": session_id, "type": "checkout_session"},
        "data": {"status": "completed", "metadata": metadata},
    }

def payout_event(name: str, payout_id: str, event_id: str | None = None, failure: dict | None = None) -> dict:
    data: dict = {"status": name.split(".")[-1]}
    if failure is not None:
        data["failureDetail"] = failure
    return {
        "event": {"name": name, "id": event_id or f"evt_{uuid.uuid4().hex}"},
        "object": {"id": payout_id, "type": "payout"},
        "data": data,
    }

def count(db: Session, model, *where) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*where)) or 0

@pytest.fixture(autouse=True)
def _settings(monkeypatch):
    monkeypatch.setattr(settings, "MONIME_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "MONIME_WEBHOOK_ALLOW_UNSIGNED", False)
    monkeypatch.setattr(settings, "rate_limit_enabled", False)

@pytest.fixture()
def db_session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs this to honour SAVEPOINT
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn) -> None:  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()

@pytest.fixture()
def payouts() -> FakePayoutClient:
    return FakePayoutClient()

@pytest.fixture()
def client(db_session: Session, payouts: FakePayoutClient) -> TestClient:
    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_payout_client] = lambda: payouts
    return TestClient(app)

@pytest.fixture()
def post_event(client: TestClient):
    def _post(payload: dict, *, signature: str | None = None):
        raw = json.dumps(payload).encode("utf-8")
        headers = {
            "content-type": "application/json",
            "x-monime-signature": signature if signature is not None else sign(raw),
        }
        return client.post("/api/payments/webhook", content=raw, headers=headers)

    return _post

@pytest.fixture()
def make_profile(db_session: Session):
    def _make(
        user_id: str,
        *,
        payout_mode: str = "auto",
        provider: str | None = "momo",
        provider_id: str | None = "m17",
        account: str | None = "23276123456",
    ) -> Profile:
        p = Profile(
            user_id=user_id,
            payout_mode=payout_mode,
            payment_provider=provider,
            payment_provider_id=provider_id,
            payment_account=account,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make

@pytest.fixture()
def make_escrow(db_session: Session):
    def _make(
        *,
        percentage: int = 100,
        status: str = "awaiting_payment",
        creative_id: str = "user_creative",
        employer_id: str = "user_employer",
        payment_amount: Decimal = Decimal("100.00"),
        net_payout_amount: Decimal = Decimal("90.00"),
        currency: str | None = "SLE",
        monime_payout_id: str | None = None,
    ) -> DeliveryEscrow:
        opp = Opportunity(title="Brand identity refresh")
        sub = WorkSubmission()
        db_session.add_all([opp, sub])
        db_session.flush()
        e = DeliveryEscrow(
            status=status,
            payment_amount=payment_amount,
            payment_percentage=percentage,
            platform_fee=payment_amount - net_payout_amount,
            net_payout_amount=net_payout_amount,
            currency=currency,
            creative_id=creative_id,
            employer_id=employer_id,
            submission_id=sub.id,
            opportunity_id=opp.id,
            monime_payout_id=monime_payout_id,
        )
        db_session.add(e)
        db_session.commit()
        return e

    return _make

@pytest.fixture()
def make_pitch(db_session: Session):
    def _make(title: str = "Solar kiosks for Makeni") -> Pitch:
        p = Pitch(title=title, total_funded=Decimal("0"))
        db_session.add(p)
        db_session.commit()
        return p

    return _make

@pytest.fixture()
def make_investment(db_session: Session, make_pitch):
    def _make(
        *,
        pitch: Pitch | None = None,
        amount: Decimal = Decimal("200.00"),
        net_payout_amount: Decimal = Decimal("190.00"),
        status: str = "awaiting_payment",
        investor_id: str = "user_investor",
        recipient_id: str = "user_founder",
        monime_payout_id: str | None = None,
    ) -> PitchInvestment:
        pitch = pitch or make_pitch()
        inv = PitchInvestment(
            status=status,
            amount=amount,
            platform_fee=amount - net_payout_amount,
            net_payout_amount=net_payout_amount,
            currency="SLE",
            investor_id=investor_id,
            recipient_id=recipient_id,
            pitch_id=pitch.id,
            monime_payout_id=monime_payout_id,
        )
        db_session.add(inv)
        db_session.commit()
        return inv

    return _make

@pytest.fixture()
def make_cashout(db_session: Session):
    def _make(
        *,
        user_id: str = "user_creative",
        amount: Decimal = Decimal("50.00"),
        payout_id: str = "po_cashout_1",
        status: str = "initiated",
        available: Decimal = Decimal("10.00"),
    ) -> CashoutRequest:
        # the cashout flow already moved the amount from available to pending
        db_session.add(
            UserWallet(user_id=user_id, currency="SLE", available_balance=available, pending_balance=amount)
        )
        c = CashoutRequest(user_id=user_id, amount=amount, currency="SLE", status=status, monime_payout_id=payout_id)
        db_session.add(c)
        db_session.commit()
        return c

    return _make
