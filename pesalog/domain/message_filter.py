"""Gatekeeper deciding which inbound messages deserve a full parse"""

import re

from pesalog.domain.models import SenderType
from pesalog.domain.senders import classify_sender

FINANCIAL_KEYWORDS = (
    "confirmed",
    "ksh",
    "kes",
    "sent to",
    "received",
    "transferred",
    "transaction",
    "balance",
    "m-pesa",
    "mpesa",
    "fuliza",
    "card",
    "paybill",
)

# Negative outcomes: no money moved even if the text parses
FAILED_TRANSACTION_PATTERN = re.compile(
    r"\b(?:failed|declined|insufficient\s+(?:funds|balance)|timed?\s*-?\s*out"
    r"|wrong\s+pin|incorrect\s+pin|invalid\s+pin|unsuccessful|not\s+successful)\b",
    re.IGNORECASE,
)


class MessageFilter:
    """Combines sender classification with content heuristics"""

    def sender_type(self, sender: str) -> SenderType:
        return classify_sender(sender)

    def has_financial_keywords(self, body: str) -> bool:
        """Cheap pre-parse check; catches new or unlisted financial senders"""
        lowered = (body or "").lower()
        return any(keyword in lowered for keyword in FINANCIAL_KEYWORDS)

    def should_process(self, sender: str, body: str) -> bool:
        if self.sender_type(sender) != SenderType.UNKNOWN:
            return True
        return self.has_financial_keywords(body)

    def is_failed_transaction(self, body: str) -> bool:
        return FAILED_TRANSACTION_PATTERN.search(body or "") is not None
