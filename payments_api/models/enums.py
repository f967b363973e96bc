from enum import Enum

class EscrowStatus(str, Enum):
    awaiting_payment = "awaiting_payment"
    payment_received = "payment_received"
    partial_payment_received = "partial_payment_received"
    payout_initiated = "payout_initiated"
    completed = "completed"
    partial_payout_completed = "partial_payout_completed"

class InvestmentStatus(str, Enum):
    awaiting_payment = "awaiting_payment"
    payment_received = "payment_received"
    payout_initiated = "payout_initiated"
    completed = "completed"

class InvestmentPayoutStatus(str, Enum):
    pending = "pending"
    initiated = "initiated"
    completed = "completed"
    failed = "failed"

class CashoutStatus(str, Enum):
    pending = "pending"
    initiated = "initiated"
    completed = "completed"
    failed = "failed"

class PaymentType(str, Enum):
    full = "full"
    partial_50 = "partial_50"
    pitch_investment = "pitch_investment"

class WalletEntryType(str, Enum):
    credit = "credit"
    debit = "debit"
    hold = "hold"
    release = "release"
    adjustment = "adjustment"

class WalletSourceType(str, Enum):
    delivery_escrow = "delivery_escrow"
    pitch_investment = "pitch_investment"
    cashout_request = "cashout_request"
    system_adjustment = "system_adjustment"

class PayoutMode(str, Enum):
    wallet = "wallet"
    auto = "auto"

class ProviderType(str, Enum):
    momo = "momo"
    bank = "bank"
    wallet = "wallet"

class SubmissionStatus(str, Enum):
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"
