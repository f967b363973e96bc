from payments_api.models.base import Base
from payments_api.models.cashout import CashoutRequest
from payments_api.models.escrow import DeliveryEscrow
from payments_api.models.notification import Notification
from payments_api.models.pitch import Pitch, PitchInvestment
from payments_api.models.profile import Profile
from payments_api.models.transaction import Transaction
from payments_api.models.wallet import UserWallet, WalletLedgerEntry
from payments_api.models.webhook_event import WebhookEvent
from payments_api.models.work import Opportunity, WorkSubmission

__all__ = [
    "Base",
    "CashoutRequest",
    "DeliveryEscrow",
    "Notification",
    "Opportunity",
    "Pitch",
    "PitchInvestment",
    "Profile",
    "Transaction",
    "UserWallet",
    "WalletLedgerEntry",
    "WebhookEvent",
    "WorkSubmission",
]
