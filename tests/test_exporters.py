"""
Unit tests for OFX export.
"""
from datetime import date

from core.exporters import (
    create_ofx_content,
    create_output_filename,
    escape_markup,
    generate_unique_id,
    is_ofx_document,
)
from core.schema import AccountInfo, Transaction

TODAY = date(2024, 6, 30)


def tx(d: str, description: str = "Purchase", amount: float = -10.0) -> Transaction:
    return Transaction(date=d, description=description, amount=amount)


def test_document_header_and_footer():
    """Fixed plaintext header followed by the SGML body."""
    doc = create_ofx_content([tx("20240105")], today=TODAY)

    assert doc.startswith(
        "OFXHEADER:100\nDATA:OFXSGML\nVERSION:102\nSECURITY:NONE\nENCODING:USASCII\n"
        "CHARSET:1252\nCOMPRESSION:NONE\nOLDFILEUID:NONE\nNEWFILEUID:NONE\n<OFX>\n"
    )
    assert doc.endswith("</OFX>")
    assert "<CODE>0</CODE>\n<SEVERITY>INFO</SEVERITY>" in doc
    assert "<DTSERVER>20240630</DTSERVER>" in doc
    assert "<BALAMT>0.00</BALAMT>\n<DTASOF>20240630</DTASOF>" in doc


def test_transactions_sorted_by_date_with_bounds():
    doc = create_ofx_content(
        [tx("20240310", "Later"), tx("20240105", "Earlier")],
        today=TODAY,
    )

    assert doc.index("<DTPOSTED>20240105") < doc.index("<DTPOSTED>20240310")
    assert "<DTSTART>20240105</DTSTART>\n<DTEND>20240310</DTEND>\n<STMTTRN>" in doc


def test_equal_dates_keep_input_order():
    doc = create_ofx_content(
        [tx("20240105", "Alpha"), tx("20240101", "Zero"), tx("20240105", "Beta")],
        today=TODAY,
    )
    assert doc.index("<MEMO>Zero") < doc.index("<MEMO>Alpha") < doc.index("<MEMO>Beta")
    assert "<FITID>20240105--10.00-Alpha-1</FITID>" in doc
    assert "<FITID>20240105--10.00-Beta-2</FITID>" in doc


def test_empty_list_uses_today_as_bounds():
    doc = create_ofx_content([], today=TODAY)

    assert "<DTSTART>20240630</DTSTART>\n<DTEND>20240630</DTEND>\n</BANKTRANLIST>" in doc
    assert "<STMTTRN>" not in doc


def test_serialization_is_repeatable():
    transactions = [tx("20240310", "Shop", -5.25), tx("20240105", "Salary", 1500)]
    assert create_ofx_content(transactions, today=TODAY) == create_ofx_content(transactions, today=TODAY)


def test_transaction_block():
    doc = create_ofx_content([tx("20240305", "Coffee", -4.5)], today=TODAY)

    assert (
        "<STMTTRN>\n"
        "<TRNTYPE>DEBIT</TRNTYPE>\n"
        "<DTPOSTED>20240305</DTPOSTED>\n"
        "<TRNAMT>-4.50</TRNAMT>\n"
        "<FITID>20240305--4.50-Coffee-0</FITID>\n"
        "<MEMO>Coffee</MEMO>\n"
        "</STMTTRN>"
    ) in doc


def test_transaction_type_from_sign():
    doc = create_ofx_content(
        [tx("20240101", "Deposit", 100), tx("20240102", "Nothing", 0)],
        today=TODAY,
    )
    assert "<TRNTYPE>CREDIT</TRNTYPE>\n<DTPOSTED>20240101" in doc
    assert "<TRNTYPE>DEBIT</TRNTYPE>\n<DTPOSTED>20240102" in doc
    assert "<TRNAMT>0.00</TRNAMT>" in doc


def test_memo_is_escaped_at_render_time():
    original = tx("20240101", "A&B <Shop>", -1)
    doc = create_ofx_content([original], today=TODAY)

    assert "<MEMO>A&amp;B &lt;Shop&gt;</MEMO>" in doc
    assert original.description == "A&B <Shop>"


def test_escape_markup():
    assert escape_markup("&<>") == "&amp;&lt;&gt;"


def test_unique_id_sanitizes_description():
    fitid = generate_unique_id(tx("20240305", "Café & Co. #12", -4.5), 3)
    assert fitid == "20240305--4.50-CafCo12-3"


def test_unique_id_truncates_description_to_50():
    fitid = generate_unique_id(tx("20240305", "A" * 80, 1), 0)
    assert fitid == "20240305-1.00-" + "A" * 50 + "-0"


def test_unique_id_hard_limit():
    fitid = generate_unique_id(tx("20240305", "Huge", 1e250), 0)
    assert len(fitid) == 255
    assert fitid.startswith("20240305-")
    # Fixed-point rendering, no exponent
    assert "e+" not in fitid
    assert fitid[len("20240305-"):].isdigit()


def test_account_placeholders_are_injected():
    account = AccountInfo(bank_id="341", account_id="12345-6", currency="USD", language="ENG")
    doc = create_ofx_content([tx("20240101")], account=account, today=TODAY)

    assert "<CURDEF>USD</CURDEF>" in doc
    assert "<BANKID>341</BANKID>\n<ACCTID>12345-6</ACCTID>\n<ACCTTYPE>CHECKING</ACCTTYPE>" in doc
    assert "<LANGUAGE>ENG</LANGUAGE>" in doc


def test_default_account_placeholders():
    doc = create_ofx_content([tx("20240101")], today=TODAY)
    assert "<CURDEF>BRL</CURDEF>" in doc
    assert "<BANKID>001</BANKID>" in doc
    assert "<ACCTID>999999-9</ACCTID>" in doc


def test_is_ofx_document():
    assert is_ofx_document("  \nOFXHEADER:100\nDATA:OFXSGML")
    assert not is_ofx_document("Date,Description,Amount")


def test_create_output_filename():
    assert create_output_filename("statement.pdf") == "statement.ofx"
    assert create_output_filename("march.2024.csv") == "march.2024.ofx"
    assert create_output_filename("") == "statement.ofx"
