"""
Transaction extraction from one statement chunk using the LLM.
Handles rate-limit retries with exponential backoff and lenient response parsing.
"""
import json
import re
import time
from typing import Any, Callable, List, Optional

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from core.config import get_settings
from core.exceptions import PermanentExtractionError, TransientExtractionError
from core.logger import setup_logger
from core.schema import Chunk, create_extraction_schema
from llm.client import ExtractionCapability, ExtractionOptions, get_client
from llm.prompts import build_extraction_prompt

logger = setup_logger(__name__)

ProgressCallback = Callable[[str], None]

RATE_LIMIT_PATTERN = re.compile(r"rate limit|429", re.IGNORECASE)


def _ignore_progress(message: str) -> None:
    pass


def is_rate_limit_error(exc: BaseException) -> bool:
    """
    Decide whether a failure is worth retrying.

    Explicitly permanent errors never are; transient ones always are;
    anything else is classified by its message.
    """
    if isinstance(exc, PermanentExtractionError):
        return False
    if isinstance(exc, TransientExtractionError):
        return True
    return bool(RATE_LIMIT_PATTERN.search(str(exc)))


def parse_response_text(text: Optional[str]) -> List[Any]:
    """
    Parse the transactions array out of a model response.

    The JSON object is taken from the first "{" to the last "}", so any prose
    around it is ignored. A response without a transactions array yields [].

    Args:
        text: Raw response text

    Returns:
        List of raw (unvalidated) records

    Raises:
        PermanentExtractionError: If the response is empty or holds no JSON object
    """
    if not text:
        raise PermanentExtractionError(
            "The AI model returned an empty response. This may be due to the file content or safety filters."
        )

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        logger.error(f"AI response did not contain a JSON object ({len(text)} chars)")
        raise PermanentExtractionError(
            "The AI returned data in an unexpected format.",
            details={"response_length": len(text)}
        )

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse AI response as JSON: {e}")
        raise PermanentExtractionError(
            f"The AI returned invalid JSON: {e.msg}",
            details={"position": e.pos}
        ) from e

    transactions = parsed.get("transactions") if isinstance(parsed, dict) else None
    if not isinstance(transactions, list):
        logger.warning("AI response has no transactions array, treating chunk as empty")
        return []

    return transactions


def build_retrying(
    max_attempts: int,
    initial_backoff: float,
    jitter: float,
    on_progress: ProgressCallback,
    sleep: Callable[[float], None] = time.sleep
) -> Retrying:
    """
    Build the retry controller for extraction calls.

    Waits initial_backoff * 2^(n-1) + uniform(0, jitter) seconds after the
    n-th failed attempt and reports the countdown before each wait.
    """
    def report_wait(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        next_attempt = retry_state.attempt_number + 1
        logger.warning(
            f"Rate limited on attempt {retry_state.attempt_number}/{max_attempts}, "
            f"retrying in {delay:.1f}s"
        )
        on_progress(f"API is busy. Retrying in {delay:.1f}s... (Attempt {next_attempt}/{max_attempts})")

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_backoff, exp_base=2) + wait_random(0, jitter),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=report_wait,
        sleep=sleep,
        reraise=True,
    )


def extract_raw_records(
    chunk: Chunk,
    file_name: str,
    on_progress: Optional[ProgressCallback] = None,
    capability: Optional[ExtractionCapability] = None,
    options: Optional[ExtractionOptions] = None,
    max_attempts: Optional[int] = None,
    initial_backoff: Optional[float] = None,
    jitter: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep
) -> List[Any]:
    """
    Extract raw transaction records from one statement chunk.

    Args:
        chunk: Statement chunk with its position
        file_name: Original statement file name
        on_progress: Receives human-readable retry messages
        capability: Extraction model (defaults to the Gemini client)
        options: Generation options (defaults from settings)
        max_attempts: Total attempt budget (defaults from settings)
        initial_backoff: Base backoff in seconds (defaults from settings)
        jitter: Max random extra wait in seconds (defaults from settings)
        sleep: Wait function, injectable for tests

    Returns:
        List of raw records, in response order

    Raises:
        PermanentExtractionError: On non-retryable failure or exhausted retries
    """
    settings = get_settings()
    on_progress = on_progress or _ignore_progress
    capability = capability or get_client()
    options = options or ExtractionOptions(
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
    )
    max_attempts = max_attempts or settings.max_retries
    initial_backoff = settings.initial_backoff_seconds if initial_backoff is None else initial_backoff
    jitter = settings.backoff_jitter_seconds if jitter is None else jitter

    prompt = build_extraction_prompt(chunk, file_name)
    schema = create_extraction_schema()
    retrying = build_retrying(max_attempts, initial_backoff, jitter, on_progress, sleep)

    logger.info(f"Extracting part {chunk.index}/{chunk.total} ({len(chunk.text)} chars)")

    attempts = 0
    try:
        for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                text = capability.call(prompt, schema, options)
                records = parse_response_text(text)

    except PermanentExtractionError as e:
        logger.error(f"Extraction failed for part {chunk.index}: {e.message}")
        raise

    except Exception as e:
        message = getattr(e, "message", None) or str(e) or type(e).__name__
        logger.error(f"Extraction failed for part {chunk.index} (attempt {attempts}): {message}")
        raise PermanentExtractionError(
            message,
            details={
                "part": chunk.index,
                "attempts": attempts,
                "rate_limited": is_rate_limit_error(e),
            }
        ) from e

    logger.info(f"Part {chunk.index}/{chunk.total} returned {len(records)} raw record(s)")
    return records
