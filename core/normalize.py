"""
Validation and normalization of raw extracted records.
Malformed records are dropped from the batch rather than failing the run.
"""
import math
import warnings
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from core.logger import setup_logger
from core.schema import NormalizationResult, Transaction

logger = setup_logger(__name__)

# Drop reasons
NOT_AN_OBJECT = "not_an_object"
MISSING_DATE = "missing_date"
MISSING_DESCRIPTION = "missing_description"
MISSING_AMOUNT = "missing_amount"
INVALID_AMOUNT = "invalid_amount"
INVALID_DATE = "invalid_date"
INVALID_RECORD = "invalid_record"


def parse_date(value: Any) -> Optional[str]:
    """
    Parse a loosely formatted calendar date into YYYYMMDD.

    Timezone-aware values are converted to UTC before formatting.

    Args:
        value: Raw date value (usually "YYYY-MM-DD")

    Returns:
        Canonical date string or None if unparseable
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None

    if not isinstance(parsed, pd.Timestamp) or pd.isna(parsed):
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC")

    # strftime does not zero-pad years below 1000
    return f"{parsed.year:04d}{parsed.month:02d}{parsed.day:02d}"


def parse_amount(value: Any) -> Optional[float]:
    """
    Coerce an extracted amount into a finite float.

    Args:
        value: Raw amount (number or numeric string)

    Returns:
        Float amount or None if not numeric
    """
    if isinstance(value, bool):
        return None

    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None

    if not math.isfinite(amount):
        return None
    return amount


def validate_record(raw: Any) -> Tuple[Optional[Transaction], Optional[str]]:
    """
    Validate a raw record and report why it was rejected.

    Args:
        raw: Untyped record from the extraction response

    Returns:
        (Transaction, None) when accepted, (None, reason) when dropped
    """
    if not isinstance(raw, dict):
        return None, NOT_AN_OBJECT

    if not raw.get("date"):
        return None, MISSING_DATE

    description = raw.get("description")
    if not description or not str(description).strip():
        return None, MISSING_DESCRIPTION

    # Zero is a valid amount, absence is not
    if raw.get("amount") is None:
        return None, MISSING_AMOUNT

    amount = parse_amount(raw["amount"])
    if amount is None:
        return None, INVALID_AMOUNT

    date = parse_date(raw["date"])
    if date is None:
        return None, INVALID_DATE

    try:
        transaction = Transaction(date=date, description=str(description).strip(), amount=amount)
    except ValidationError as e:
        logger.debug(f"Rejected record that failed model validation: {e.errors()}")
        return None, INVALID_RECORD

    return transaction, None


def normalize_record(raw: Any) -> Optional[Transaction]:
    """
    Normalize a raw record into a canonical Transaction.

    Args:
        raw: Untyped record from the extraction response

    Returns:
        Transaction, or None if the record should be dropped
    """
    transaction, _ = validate_record(raw)
    return transaction


def normalize_records(raws: Iterable[Dict[str, Any]]) -> NormalizationResult:
    """
    Normalize a batch of raw records, preserving input order.

    Args:
        raws: Raw records from one extraction response

    Returns:
        NormalizationResult with accepted transactions and drop counts
    """
    result = NormalizationResult()
    for raw in raws:
        transaction, reason = validate_record(raw)
        if transaction is None:
            result.dropped.add(reason)
            continue
        result.transactions.append(transaction)

    if result.dropped.total:
        logger.debug(f"Dropped {result.dropped.total} malformed record(s): {result.dropped.reasons}")

    return result
