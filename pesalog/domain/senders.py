"""Sender classification against a fixed allow-list of institution tokens"""

from pesalog.domain.models import SenderType

# Checked first: some bank tokens are substrings of mobile-money-adjacent names (KCBMPESA)
MOBILE_MONEY_SENDERS = ("MPESA", "M-PESA", "SAFARICOM")

BANK_SENDERS = (
    "KCB",
    "EQUITEL",
    "EQUITY",
    "COOP",
    "COOPERATIVE",
    "CO-OPERATIVE",
    "ABSA",
    "NCBA",
    "STANBIC",
    "DTB",
    "FAMILY",
    "I&M",
    "SIDIAN",
    "HF",
    "ECOBANK",
    "STANDARD",
    "PRIME",
    "CREDIT",
)

CARD_SENDERS = ("VISA", "MASTERCARD", "AMEX")

FINANCIAL_SENDERS = MOBILE_MONEY_SENDERS + BANK_SENDERS + CARD_SENDERS


def classify_sender(sender: str) -> SenderType:
    """Case-insensitive substring match; total, never raises"""
    normalized = (sender or "").upper().strip()
    if not normalized:
        return SenderType.UNKNOWN

    if any(token in normalized for token in MOBILE_MONEY_SENDERS):
        return SenderType.MOBILE_MONEY
    if any(token in normalized for token in BANK_SENDERS):
        return SenderType.BANK
    if any(token in normalized for token in CARD_SENDERS):
        return SenderType.CARD
    return SenderType.UNKNOWN


def is_financial_sender(sender: str) -> bool:
    return classify_sender(sender) != SenderType.UNKNOWN
