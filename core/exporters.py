"""
OFX 1.02 (SGML) export of normalized transactions.
Output layout is fixed; only dates, amounts and memos vary.
"""
import re
from datetime import date as date_cls
from pathlib import Path
from typing import List, Optional, Sequence

from core.logger import setup_logger
from core.schema import AccountInfo, Transaction

logger = setup_logger(__name__)

OFX_HEADER_MARKER = "OFXHEADER:"

# OFX FITID hard limit
MAX_FITID_LENGTH = 255
MAX_FITID_DESCRIPTION_LENGTH = 50

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")

OFX_HEADER = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE"""


def is_ofx_document(text: str) -> bool:
    """Return True if the text already starts with an OFX header."""
    return text.strip().startswith(OFX_HEADER_MARKER)


def escape_markup(text: str) -> str:
    """Escape the SGML reserved characters &, < and >."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def format_amount(amount: float) -> str:
    """Format an amount with exactly two fractional digits."""
    # -0.0 renders as 0.00
    return f"{amount + 0.0:.2f}"


def generate_unique_id(transaction: Transaction, index: int) -> str:
    """
    Build a pseudo-unique FITID from transaction data.

    Helps banking software skip duplicates when a statement is imported twice.

    Args:
        transaction: Transaction being rendered
        index: 0-based position in the sorted transaction list

    Returns:
        FITID value, at most 255 characters
    """
    clean_desc = _NON_ALPHANUMERIC.sub("", transaction.description)[:MAX_FITID_DESCRIPTION_LENGTH]
    fitid = f"{transaction.date}-{format_amount(transaction.amount)}-{clean_desc}-{index}"
    return fitid[:MAX_FITID_LENGTH]


def sort_transactions(transactions: Sequence[Transaction]) -> List[Transaction]:
    """Return a copy sorted by date ascending. Equal dates keep input order."""
    return sorted(transactions, key=lambda t: t.date)


def format_transaction(transaction: Transaction, index: int) -> str:
    """Render one STMTTRN block."""
    trntype = "CREDIT" if transaction.amount > 0 else "DEBIT"
    return (
        "\n<STMTTRN>"
        f"\n<TRNTYPE>{trntype}</TRNTYPE>"
        f"\n<DTPOSTED>{transaction.date}</DTPOSTED>"
        f"\n<TRNAMT>{format_amount(transaction.amount)}</TRNAMT>"
        f"\n<FITID>{generate_unique_id(transaction, index)}</FITID>"
        f"\n<MEMO>{escape_markup(transaction.description)}</MEMO>"
        "\n</STMTTRN>"
    )


def create_ofx_content(
    transactions: Sequence[Transaction],
    account: Optional[AccountInfo] = None,
    today: Optional[date_cls] = None
) -> str:
    """
    Serialize transactions into an OFX 1.02 document.

    Args:
        transactions: Normalized transactions in any order
        account: Placeholder account details (defaults to AccountInfo())
        today: Server date for DTSERVER/DTASOF and empty-list bounds

    Returns:
        Complete OFX document string
    """
    account = account or AccountInfo()
    date_created = (today or date_cls.today()).strftime("%Y%m%d")

    sorted_transactions = sort_transactions(transactions)

    if sorted_transactions:
        start_date = sorted_transactions[0].date
        end_date = sorted_transactions[-1].date
    else:
        start_date = end_date = date_created

    transaction_list = "".join(
        format_transaction(t, i) for i, t in enumerate(sorted_transactions)
    )

    body = f"""<OFX>
<SIGNONMSGSRSV1>
<SONRS>
<STATUS>
<CODE>0</CODE>
<SEVERITY>INFO</SEVERITY>
</STATUS>
<DTSERVER>{date_created}</DTSERVER>
<LANGUAGE>{account.language}</LANGUAGE>
</SONRS>
</SIGNONMSGSRSV1>
<BANKMSGSRSV1>
<STMTTRNRS>
<TRNUID>1</TRNUID>
<STATUS>
<CODE>0</CODE>
<SEVERITY>INFO</SEVERITY>
</STATUS>
<STMTRS>
<CURDEF>{account.currency}</CURDEF>
<BANKACCTFROM>
<BANKID>{account.bank_id}</BANKID>
<ACCTID>{account.account_id}</ACCTID>
<ACCTTYPE>{account.account_type}</ACCTTYPE>
</BANKACCTFROM>
<BANKTRANLIST>
<DTSTART>{start_date}</DTSTART>
<DTEND>{end_date}</DTEND>{transaction_list}
</BANKTRANLIST>
<LEDGERBAL>
<BALAMT>{format_amount(account.ledger_balance)}</BALAMT>
<DTASOF>{date_created}</DTASOF>
</LEDGERBAL>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>"""

    logger.info(f"Serialized {len(sorted_transactions)} transactions ({start_date} - {end_date})")
    return f"{OFX_HEADER}\n{body}"


def create_output_filename(file_name: str) -> str:
    """
    Derive the download name for a converted statement.

    Args:
        file_name: Original uploaded file name

    Returns:
        File name with the extension replaced by .ofx
    """
    stem = Path(file_name).stem if file_name else ""
    return f"{stem or 'statement'}.ofx"
