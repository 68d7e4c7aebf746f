"""
Statement conversion service.
Sequences chunking, per-chunk extraction, normalization and OFX export.
"""
import time
from typing import Callable, List, Optional, Tuple

from core.chunking import build_chunks
from core.config import get_settings
from core.exceptions import ConversionError, EmptyResultError, OfxConverterException
from core.exporters import create_ofx_content, is_ofx_document
from core.logger import setup_logger
from core.normalize import normalize_records
from core.schema import AccountInfo, ConversionResult, Transaction
from llm.client import ExtractionCapability, ExtractionOptions
from llm.extract import ProgressCallback, extract_raw_records

logger = setup_logger(__name__)


def _ignore_progress(message: str) -> None:
    pass


class ConversionService:
    """Service converting raw statement text into an OFX document."""

    def __init__(
        self,
        capability: Optional[ExtractionCapability] = None,
        account: Optional[AccountInfo] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize conversion service.

        Args:
            capability: Extraction model (defaults to the Gemini client on first use)
            account: Placeholder account details for the OFX statement
            sleep: Wait function for pacing pauses and retry backoff
        """
        self.settings = get_settings()
        self.capability = capability
        self.account = account or AccountInfo(
            bank_id=self.settings.bank_id,
            account_id=self.settings.account_id,
            account_type=self.settings.account_type,
            currency=self.settings.currency,
            language=self.settings.language,
        )
        self.sleep = sleep
        self.options = ExtractionOptions(
            temperature=self.settings.temperature,
            max_output_tokens=self.settings.max_output_tokens,
        )

    def extract_transactions(
        self,
        raw_text: str,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> List[Transaction]:
        """
        Extract transactions from statement text, chunk by chunk.

        Chunks are processed strictly in order; any chunk failure aborts the
        whole run and discards results from earlier chunks.

        Args:
            raw_text: Statement text
            file_name: Original statement file name
            on_progress: Receives human-readable progress messages

        Returns:
            Transactions in chunk order (not sorted)

        Raises:
            ConversionError: If any chunk fails
            EmptyResultError: If no transactions were found
        """
        transactions, _ = self._extract(raw_text, file_name, on_progress)
        return transactions

    def _extract(
        self,
        raw_text: str,
        file_name: str,
        on_progress: Optional[ProgressCallback]
    ) -> Tuple[List[Transaction], int]:
        """Run the chunk loop, returning transactions and the dropped record count."""
        on_progress = on_progress or _ignore_progress
        on_progress("Analyzing statement...")

        chunks = build_chunks(raw_text, self.settings.max_chunk_size)
        total = len(chunks)
        multi_chunk = total > 1
        logger.info(f"Converting '{file_name}': {len(raw_text)} chars in {total} part(s)")

        if multi_chunk:
            on_progress(f"Large file detected. Splitting into {total} parts.")
            self.sleep(self.settings.split_notice_pause_seconds)

        all_transactions: List[Transaction] = []
        dropped = 0

        for chunk in chunks:
            if multi_chunk:
                on_progress(f"Processing part {chunk.index} of {total}...")

            try:
                raw_records = extract_raw_records(
                    chunk,
                    file_name,
                    on_progress=on_progress,
                    capability=self.capability,
                    options=self.options,
                    sleep=self.sleep,
                )
            except OfxConverterException as e:
                raise ConversionError(
                    f"Failed to process part {chunk.index} of the document. Original error: {e.message}",
                    details={"part": chunk.index, "total": total, "error_type": type(e).__name__, **e.details},
                    part=chunk.index
                ) from e

            normalized = normalize_records(raw_records)
            all_transactions.extend(normalized.transactions)
            dropped += normalized.dropped.total

            if multi_chunk:
                on_progress(f"Processing part {chunk.index} of {total}... done.")
                self.sleep(self.settings.part_done_pause_seconds)

        if dropped:
            logger.warning(f"Dropped {dropped} malformed record(s) from '{file_name}'")

        if not all_transactions:
            raise EmptyResultError(
                "No transactions could be found in the document. Please check the file content and try again.",
                details={"parts": total, "dropped_records": dropped}
            )

        on_progress("Finalizing conversion...")
        logger.info(f"Extracted {len(all_transactions)} transactions from '{file_name}'")
        return all_transactions, dropped

    def convert_detailed(
        self,
        raw_text: str,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> ConversionResult:
        """
        Convert statement text into an OFX document with run statistics.

        Text that already starts with an OFX header is returned verbatim
        without calling the extraction model.

        Raises:
            ConversionError: If extraction fails or finds nothing
        """
        if is_ofx_document(raw_text):
            logger.info(f"'{file_name}' is already an OFX document, skipping extraction")
            return ConversionResult(document=raw_text, already_ofx=True)

        transactions, dropped = self._extract(raw_text, file_name, on_progress)
        document = create_ofx_content(transactions, account=self.account)
        return ConversionResult(
            document=document,
            transaction_count=len(transactions),
            dropped_records=dropped,
        )

    def convert(
        self,
        raw_text: str,
        file_name: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> str:
        """
        Convert statement text into an OFX document string.

        Args:
            raw_text: Statement text
            file_name: Original statement file name
            on_progress: Receives human-readable progress messages

        Returns:
            OFX document

        Raises:
            ConversionError: If extraction fails or finds nothing
        """
        return self.convert_detailed(raw_text, file_name, on_progress).document
