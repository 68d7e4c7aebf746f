"""
Pydantic models for transactions, chunks and conversion results.
Defines the strict JSON schema the extraction model must follow.
"""
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

REQUIRED_RECORD_FIELDS: List[str] = ["date", "description", "amount"]


class ConversionStatus(str, Enum):
    """Externally observed state of a conversion run."""
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class Transaction(BaseModel):
    """
    Canonical transaction produced by the normalizer.
    Immutable once created; description is stored unescaped.
    """
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., pattern=r"^\d{8}$", description="Posting date as YYYYMMDD")
    description: str = Field(..., min_length=1)
    amount: float = Field(..., description="Negative for debits, positive for credits")


class Chunk(BaseModel):
    """Line-aligned slice of statement text with its 1-based position."""
    model_config = ConfigDict(frozen=True)

    text: str
    index: int = Field(..., ge=1)
    total: int = Field(..., ge=1)

    @field_validator("total")
    @classmethod
    def validate_total(cls, v, info):
        """Position must not exceed the chunk count."""
        index = info.data.get("index")
        if index is not None and index > v:
            raise ValueError(f"Chunk index {index} exceeds total {v}")
        return v


class AccountInfo(BaseModel):
    """Placeholder account details written into the OFX statement."""
    bank_id: str = "001"
    account_id: str = "999999-9"
    account_type: str = "CHECKING"
    currency: str = "BRL"
    language: str = "POR"
    ledger_balance: float = 0.0


class ConversionResult(BaseModel):
    """Outcome of a successful conversion."""
    document: str
    transaction_count: int = 0
    already_ofx: bool = False
    dropped_records: int = 0

    @property
    def message(self) -> str:
        """User-facing success message."""
        if self.already_ofx:
            return "Success! This file is already in OFX format."
        return f"Success! {self.transaction_count} transactions converted."


def create_extraction_schema() -> Dict[str, Any]:
    """
    Create JSON schema for the extraction model's structured output.

    Returns:
        JSON schema dictionary
    """
    transaction_schema = {
        "type": "object",
        "properties": {
            "date": {
                "type": "string",
                "description": "Transaction date in YYYY-MM-DD format."
            },
            "description": {
                "type": "string",
                "description": "A clean, concise description of the transaction, omitting any redundant info like dates."
            },
            "amount": {
                "type": "number",
                "description": "The transaction amount. Must be negative for debits/withdrawals/payments and positive for credits/deposits."
            }
        },
        "required": list(REQUIRED_RECORD_FIELDS)
    }
    return {
        "type": "object",
        "properties": {
            "transactions": {
                "type": "array",
                "items": transaction_schema,
                "description": "An array of all transactions found in the statement portion."
            }
        },
        "required": ["transactions"]
    }


class DropSummary(BaseModel):
    """Counts of raw records rejected by the normalizer, keyed by reason."""
    reasons: Dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.reasons.values())

    def add(self, reason: str) -> None:
        self.reasons[reason] = self.reasons.get(reason, 0) + 1


class NormalizationResult(BaseModel):
    """Normalized transactions plus the rejects that were dropped."""
    transactions: List[Transaction] = Field(default_factory=list)
    dropped: DropSummary = Field(default_factory=DropSummary)
