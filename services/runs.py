"""
Conversion run tracking.

Each submitted file starts a new run with a monotonically increasing id.
Progress and results from a superseded run are discarded, so a slow earlier
conversion can never overwrite the state of a newer one.
"""
import itertools
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.logger import setup_logger
from core.schema import ConversionResult, ConversionStatus

logger = setup_logger(__name__)

IDLE_MESSAGE = "Ready to convert your file."


class ConversionTracker:
    """Idle -> Processing -> {Success, Error} state machine for one client session."""

    def __init__(self):
        self._lock = threading.Lock()
        self._run_ids = itertools.count(1)
        self.run_id = 0
        self.status = ConversionStatus.IDLE
        self.message = IDLE_MESSAGE
        self.error: Optional[str] = None
        self.file_name: Optional[str] = None
        self.result: Optional[ConversionResult] = None
        self.updated_at = datetime.now(timezone.utc)

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def begin(self, file_name: str) -> int:
        """
        Start a new run, superseding any run in progress.

        Returns:
            The new run id
        """
        with self._lock:
            self.run_id = next(self._run_ids)
            self.status = ConversionStatus.PROCESSING
            self.message = "Reading file..."
            self.error = None
            self.result = None
            self.file_name = file_name
            self._touch()
            logger.debug(f"Started run {self.run_id} for '{file_name}'")
            return self.run_id

    def is_current(self, run_id: int) -> bool:
        return run_id == self.run_id

    def report(self, run_id: int, message: str) -> bool:
        """Record a progress message. Returns False if the run is stale."""
        with self._lock:
            if not self.is_current(run_id) or self.status != ConversionStatus.PROCESSING:
                return False
            self.message = message
            self._touch()
            return True

    def succeed(self, run_id: int, result: ConversionResult) -> bool:
        """Mark the run successful. Returns False if the run is stale."""
        with self._lock:
            if not self.is_current(run_id):
                logger.info(f"Discarding result of superseded run {run_id}")
                return False
            self.status = ConversionStatus.SUCCESS
            self.result = result
            self.message = result.message
            self._touch()
            return True

    def fail(self, run_id: int, error: str) -> bool:
        """Mark the run failed. Returns False if the run is stale."""
        with self._lock:
            if not self.is_current(run_id):
                logger.info(f"Discarding failure of superseded run {run_id}")
                return False
            self.status = ConversionStatus.ERROR
            self.error = error
            self.message = "Conversion Failed"
            self._touch()
            return True

    def reset(self) -> None:
        """Return to Idle. Any run still in flight becomes stale."""
        with self._lock:
            self.run_id = next(self._run_ids)
            self.status = ConversionStatus.IDLE
            self.message = IDLE_MESSAGE
            self.error = None
            self.result = None
            self.file_name = None
            self._touch()

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the current state (without the document body)."""
        with self._lock:
            data: Dict[str, Any] = {
                "run_id": self.run_id,
                "status": self.status.value,
                "message": self.message,
                "file_name": self.file_name,
                "updated_at": self.updated_at.isoformat(),
            }
            if self.status == ConversionStatus.SUCCESS and self.result is not None:
                data["transaction_count"] = self.result.transaction_count
                data["already_ofx"] = self.result.already_ofx
                data["dropped_records"] = self.result.dropped_records
            if self.status == ConversionStatus.ERROR:
                data["error"] = self.error
            return data
