"""
Dialect pattern library for Kenyan financial messages.

Supports M-Pesa, M-Shwari, Fuliza overdraft, bank transfers/confirmations
and card alerts. Each dialect pairs a named-group pattern with the fields
it must capture and the transaction type it implies. Order of DIALECTS
is the match precedence: most specific first.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from pesalog.domain.models import DialectKind, SourceChannel, TransactionType


def _amount(name: str) -> str:
    return rf"(?P<{name}>[\d,]+(?:\.\d{{2}})?)"


_REF = r"(?P<ref_code>[A-Z0-9]{10})"
_SLASH_DATE = r"(?P<date>\d{1,2}/\d{1,2}/\d{2,4})"
_CLOCK_12H = r"(?P<time>\d{1,2}:\d{2}\s*[AP]M)"
_MPESA_BALANCE = r"(?:New\s+M-PESA\s+balance\s+is\s+Ksh\s*" + _amount("balance") + r")?"
_TRANSACTION_COST = r"(?:Transaction\s+cost,?\s*Ksh\s*" + _amount("fee") + r")?"

# "UAH3H46G3P Confirmed. Fuliza M-Pesa amount is Ksh 716.62. Access Fee charged Ksh 7.17.
#  Total Fuliza M-Pesa outstanding amount is Ksh 723.79 due on 17/02/26."
FULIZA_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s+Fuliza\s+M-Pesa\s+amount\s+is\s+Ksh\s*" + _amount("principal")
    + r"\.\s*Access\s+Fee\s+charged\s+Ksh\s*" + _amount("fee")
    + r"\.\s*Total\s+Fuliza\s+M-Pesa\s+outstanding\s+amount\s+is\s+Ksh\s*" + _amount("total_outstanding")
    + r"\s+due\s+on\s+(?P<due_date>\d{2}/\d{2}/\d{2})"
)

# "UA33H2XD7S Confirmed. Ksh 60.00 from your M-PESA has been used to partially pay your
#  outstanding Fuliza M-PESA. Available Fuliza M-PESA limit is Ksh 2,940.00. M-PESA balance is Ksh 0.00."
FULIZA_AUTO_REPAYMENT_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s*Ksh\s*" + _amount("amount")
    + r"\s+from\s+your\s+M-PESA\s+has\s+been\s+used\s+to\s+(?P<payment_type>partially|fully)"
    + r"\s+pay\s+your\s+outstanding\s+Fuliza\s+M-PESA\.?\s*(?:Your\s+)?(?:Available\s+)?"
    + r"Fuliza\s+M-PESA\s+limit\s+is\s+Ksh\s*" + _amount("available_limit")
    + r"\.?\s*M-PESA\s+balance\s+is\s+Ksh\s*" + _amount("balance")
)

# "UAH3H46G3Q Confirmed. Your Fuliza M-Pesa loan of Ksh 500.00 has been repaid."
FULIZA_REPAYMENT_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s*(?:Your\s+)?Fuliza\s+M-Pesa\s+(?:loan\s+)?(?:of\s+)?Ksh\s*"
    + _amount("amount") + r"\s+has\s+been\s+(?:repaid|paid)"
)

# "UAH3H48NSC Confirmed.Ksh5,000.00 transferred from M-Shwari account on 17/1/26 at 6:06 PM.
#  M-Shwari balance is Ksh1,000.00 .M-PESA balance is Ksh5,120.00"
MSHWARI_TRANSFER_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.?\s*Ksh\s*" + _amount("amount")
    + r"\s+transferred\s+from\s+M-Shwari\s+account\s+on\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H
    + r"\.?\s*(?:M-Shwari\s+balance\s+is\s+Ksh\s*" + _amount("shwari_balance") + r")?"
    + r"\s*\.?\s*(?:M-PESA\s+balance\s+is\s+Ksh\s*" + _amount("mpesa_balance") + r")?"
)

# "UAH3H46D7H Confirmed. You have received Ksh1,000.00 from JOHN DOE 0712345678 on 17/1/26 at 5:34 AM"
MPESA_RECEIVED_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s*You\s+have\s+received\s+Ksh\s*" + _amount("amount")
    + r"\s+from\s+(?P<sender>.+?)\s+(?P<phone>0\d{9})?\s*on\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H
)

# "EVITECH COMPUTER SOLUTION LTD has transferred KES 37500.00 to your MPESA.
#  Please await MPESA notification. MPESA ref is UAH3H4ABCD & Bank transaction ref is 1234567"
BANK_TRANSFER_PATTERN = (
    r"^(?P<sender>.+?)\s+has\s+transferred\s+KES\s+" + _amount("amount")
    + r"\s+to\s+your\s+MPESA\.\s*(?:Please\s+await\s+MPESA\s+notification\.)?"
    + r"\s*MPESA\s+ref\s+is\s+(?P<mpesa_ref>[A-Z0-9]+)"
    + r"\s*(?:&?\s*Bank\s+transaction\s+ref\s+is\s+(?P<bank_ref>\d+))?"
)

# "UA23H2U42X confirmed.You bought Ksh100.00 of airtime on 2/1/26 at 4:15 PM.New M-PESA balance is Ksh0.00."
MPESA_AIRTIME_PATTERN = (
    r"^" + _REF + r"\s+[Cc]onfirmed\.?\s*You\s+bought\s+Ksh\s*" + _amount("amount")
    + r"\s+of\s+airtime\s+on\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H + r"\.?\s*" + _MPESA_BALANCE
)

# "UA33H2XVOX Confirmed. On 3/1/26 at 7:25 PM Give Ksh17,000.00 cash to Joker Enterprises
#  New M-PESA balance is Ksh17,000.00."
MPESA_AGENT_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s*On\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H
    + r"\s+Give\s+Ksh\s*" + _amount("amount") + r"\s+cash\s+to\s+(?P<agent_name>.+?)"
    + r"\s+(?:New\s+)?M-PESA\s+balance\s+is\s+Ksh\s*" + _amount("balance")
)

# "Confirmed. Payment of KES. 150.00 to QUICK URBAN MINIMART Till No. 0766109079 has been received.
#  Ref. UA33H2X9IB on 03-01-2026 at 16:30."
MPESA_TILL_PATTERN = (
    r"Confirmed\.\s*Payment\s+of\s+KES\.?\s*" + _amount("amount")
    + r"\s+to\s+(?P<till_name>.+?)\s+Till\s+No\.?\s*(?P<till_number>\d+)\s+has\s+been\s+received\."
    + r"\s*Ref\.?\s*" + _REF + r"\s+on\s+(?P<date>\d{2}-\d{2}-\d{4})\s+at\s+(?P<time>\d{2}:\d{2})"
)

# "Confirmed. Your M-PESA transaction UA33H2XY8R of Ksh 5000.00 to KCB Paybill A/C for account
#  5249110087145733 on 03/01/2026 at 07:41 PM has been received."
MPESA_PAYBILL_ALT_PATTERN = (
    r"Confirmed\.\s*Your\s+M-PESA\s+transaction\s+" + _REF + r"\s+of\s+Ksh\s*" + _amount("amount")
    + r"\s+to\s+(?P<paybill_name>.+?)\s+(?:Paybill\s+)?(?:A/C\s+)?for\s+account\s+(?P<account>\w+)"
    + r"\s+on\s+(?P<date>\d{2}[/-]\d{2}[/-]\d{2,4})\s+at\s+" + _CLOCK_12H
)

# "UAF3H3ZJNR Confirmed. Ksh670.00 sent to Co-operative Bank Money Transfer for account 1053773
#  on 2/1/26 at 1:49 PM New M-PESA balance is Ksh1,330.00. Transaction cost, Ksh0.00."
MPESA_PAYBILL_PATTERN = (
    r"^" + _REF + r"\s+Confirmed\.\s+Ksh\s*" + _amount("amount")
    + r"\s+sent\s+to\s+(?P<paybill_name>.+?)\s+for\s+account\s+(?P<account>\w+)"
    + r"\s+on\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H
    + r"\.?\s*" + _MPESA_BALANCE + r"\.?\s*" + _TRANSACTION_COST
)

# "UAH3H46D7H Confirmed. Ksh330.00 sent to EDWARD KAMAU 0718824980 on 17/1/26 at 5:34 AM.
#  New M-PESA balance is Ksh1,200.00. Transaction cost, Ksh7.00."
MPESA_SEND_PATTERN = (
    r"^" + _REF + r"\s+[Cc]onfirmed\.\s+Ksh\s*" + _amount("amount")
    + r"\s+(?:sent|paid)\s+to\s+(?P<recipient>.+?)\.?\s+(?:(?P<phone>0\d{9})\s+)?"
    + r"on\s+" + _SLASH_DATE + r"\s+at\s+" + _CLOCK_12H
    + r"\.?\s*" + _MPESA_BALANCE + r"\.?\s*" + _TRANSACTION_COST
)

# "Dear LAWRENCE WAINAINA, you have sent Ksh. 670.0 to LUGXURIOUS T/A LUGXURIOUS PMG LOUNGE
#  for 1053773 on 02/01/2026 at 13:49. MPESA Ref. UAF3H3ZJNR"
BANK_CONFIRMATION_PATTERN = (
    r"^Dear\s+(?P<recipient>.+?),\s*you\s+have\s+sent\s+Ksh\.?\s*(?P<amount>[\d,]+(?:\.\d+)?)"
    + r"\s+to\s+(?P<business>.+?)\s+for\s+(?P<account>\w+)\s+on\s+(?P<date>\d{2}/\d{2}/\d{4})"
    + r"\s+at\s+(?P<time>[\d:]+)\.\s*MPESA\s+Ref\.\s*" + r"(?P<ref_code>[A-Z0-9]+)"
)

# "USD 19.00 transaction made on KCB card 5249***5733 at LARAVEL FORGE on 15/01/2026 16:08pm,
#  Avail balance KES 1,234.00"
CARD_TRANSACTION_PATTERN = (
    r"^(?P<currency>[A-Z]{3})\s+" + _amount("amount") + r"\s+transaction\s+made\s+on\s+(?P<bank>\w+)"
    + r"\s+card\s+(?P<card_mask>\d{4}\*{2,3}\d{4})\s+at\s+(?P<merchant>.+?)\s+on\s+(?P<date>\d{2}/\d{2}/\d{4})"
    + r"\s+(?P<time>\d{2}:\d{2}(?:am|pm)?),?\s*"
    + r"(?:Avail\s+balance\s+(?P<balance_currency>[A-Z]{3})\s+" + _amount("balance") + r")?"
)

# Canonical reference token: 2-3 letters then 7-8 alphanumerics
REF_CODE_PATTERN = re.compile(r"\b([A-Z]{2,3}[A-Z0-9]{7,8})\b")


@dataclass(frozen=True)
class Dialect:
    """One recognised message shape"""

    kind: DialectKind
    pattern: re.Pattern
    transaction_type: TransactionType
    source: SourceChannel
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()

    def match(self, body: str) -> Optional[re.Match]:
        """Match the body; a match missing a required group is no match"""
        found = self.pattern.search(body)
        if found is None:
            return None
        groups = found.groupdict()
        if any(not (groups.get(name) or "").strip() for name in self.required):
            return None
        return found


def _dialect(
    kind: DialectKind,
    pattern: str,
    transaction_type: TransactionType,
    source: SourceChannel,
    required: Sequence[str],
    optional: Sequence[str] = (),
) -> Dialect:
    return Dialect(
        kind=kind,
        pattern=re.compile(pattern, re.IGNORECASE),
        transaction_type=transaction_type,
        source=source,
        required=tuple(required),
        optional=tuple(optional),
    )


MM = SourceChannel.MOBILE_MONEY

# Match precedence (most specific first): facility messages are supersets of
# looser mobile-money shapes, and paybill text also satisfies the send pattern.
DIALECTS: List[Dialect] = [
    _dialect(DialectKind.FULIZA, FULIZA_PATTERN, TransactionType.DEBT, MM,
             ["ref_code", "principal", "fee", "total_outstanding", "due_date"]),
    _dialect(DialectKind.FULIZA_AUTO_REPAYMENT, FULIZA_AUTO_REPAYMENT_PATTERN, TransactionType.DEBT_REPAYMENT, MM,
             ["ref_code", "amount", "payment_type", "available_limit", "balance"]),
    _dialect(DialectKind.FULIZA_REPAYMENT, FULIZA_REPAYMENT_PATTERN, TransactionType.DEBT_REPAYMENT, MM,
             ["ref_code", "amount"]),
    _dialect(DialectKind.MSHWARI_TRANSFER, MSHWARI_TRANSFER_PATTERN, TransactionType.TRANSFER, MM,
             ["ref_code", "amount", "date", "time"], ["shwari_balance", "mpesa_balance"]),
    _dialect(DialectKind.MPESA_RECEIVED, MPESA_RECEIVED_PATTERN, TransactionType.INCOME, MM,
             ["ref_code", "amount", "sender", "date", "time"], ["phone"]),
    _dialect(DialectKind.BANK_TRANSFER, BANK_TRANSFER_PATTERN, TransactionType.INCOME, SourceChannel.BANK,
             ["sender", "amount", "mpesa_ref"], ["bank_ref"]),
    _dialect(DialectKind.MPESA_AIRTIME, MPESA_AIRTIME_PATTERN, TransactionType.EXPENSE, MM,
             ["ref_code", "amount", "date", "time"], ["balance"]),
    _dialect(DialectKind.MPESA_AGENT, MPESA_AGENT_PATTERN, TransactionType.EXPENSE, MM,
             ["ref_code", "date", "time", "amount", "agent_name", "balance"]),
    _dialect(DialectKind.MPESA_TILL, MPESA_TILL_PATTERN, TransactionType.EXPENSE, MM,
             ["amount", "till_name", "till_number", "ref_code", "date", "time"]),
    _dialect(DialectKind.MPESA_PAYBILL_ALT, MPESA_PAYBILL_ALT_PATTERN, TransactionType.EXPENSE, MM,
             ["ref_code", "amount", "paybill_name", "account", "date", "time"]),
    _dialect(DialectKind.MPESA_PAYBILL, MPESA_PAYBILL_PATTERN, TransactionType.EXPENSE, MM,
             ["ref_code", "amount", "paybill_name", "account", "date", "time"], ["balance", "fee"]),
    _dialect(DialectKind.MPESA_SEND, MPESA_SEND_PATTERN, TransactionType.EXPENSE, MM,
             ["ref_code", "amount", "recipient", "date", "time"], ["phone", "balance", "fee"]),
    _dialect(DialectKind.BANK_CONFIRMATION, BANK_CONFIRMATION_PATTERN, TransactionType.EXPENSE, SourceChannel.BANK,
             ["recipient", "amount", "business", "account", "date", "time", "ref_code"]),
    _dialect(DialectKind.CARD_TRANSACTION, CARD_TRANSACTION_PATTERN, TransactionType.EXPENSE, SourceChannel.CARD,
             ["currency", "amount", "bank", "card_mask", "merchant", "date", "time"],
             ["balance_currency", "balance"]),
]


class DialectLibrary:
    """Precedence-ordered catalogue of dialects"""

    def __init__(self, dialects: Sequence[Dialect] | None = None):
        self.dialects: List[Dialect] = list(DIALECTS if dialects is None else dialects)

    def __iter__(self) -> Iterator[Dialect]:
        return iter(self.dialects)

    def __len__(self) -> int:
        return len(self.dialects)

    def kinds(self) -> List[DialectKind]:
        return [d.kind for d in self.dialects]

    def get(self, kind: DialectKind) -> Dialect:
        for dialect in self.dialects:
            if dialect.kind == kind:
                return dialect
        raise KeyError(kind)

    def candidates(self, body: str) -> List[DialectKind]:
        """Every dialect that would match, in precedence order (diagnostics only)"""
        return [d.kind for d in self.dialects if d.match(body) is not None]


def extract_ref_codes(body: str) -> List[str]:
    """
    Extract reference codes in encounter order, deduplicated.

    Tokens without a digit are skipped: all-letter words such as
    "CONFIRMED" or upper-cased merchant names share the shape.
    """
    seen: List[str] = []
    for token in REF_CODE_PATTERN.findall(body):
        if token not in seen and any(ch.isdigit() for ch in token):
            seen.append(token)
    return seen
