"""
FastAPI routes for statement upload, conversion status and OFX download.
Clean API layer following separation of concerns principle.
"""
import asyncio
import uuid
from collections import OrderedDict
from typing import Callable, Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from core.config import get_settings
from core.exceptions import FileProcessingError, OfxConverterException
from core.exporters import create_output_filename
from core.logger import setup_logger
from core.parsing import detect_kind, read_statement_text
from core.schema import ConversionResult, ConversionStatus
from services.conversion_service import ConversionService
from services.runs import ConversionTracker

logger = setup_logger(__name__)
settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title="AI OFX Converter",
    description="Convert PDF, CSV and TXT bank statements to OFX",
    version="1.0.0"
)

# In-memory session storage (no conversion history is persisted), oldest first
sessions: "OrderedDict[str, ConversionTracker]" = OrderedDict()

# Service instance
conversion_service = ConversionService()


def get_tracker(session_id: str) -> ConversionTracker:
    """Look up a session's tracker or fail with 404."""
    if session_id not in sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    sessions.move_to_end(session_id)
    return sessions[session_id]


def evict_oldest_session() -> None:
    """Drop the least recently used session, sparing running conversions when possible."""
    victim = next(
        (sid for sid, tracker in sessions.items() if tracker.status != ConversionStatus.PROCESSING),
        next(iter(sessions))
    )
    del sessions[victim]
    logger.info(f"Evicted session {victim} ({len(sessions)} remaining)")


def register_session(session_id: str) -> ConversionTracker:
    """
    Get or create the tracker for a session.

    At most settings.max_sessions sessions are kept; creating one more evicts
    the least recently used.
    """
    tracker = sessions.get(session_id)
    if tracker is not None:
        sessions.move_to_end(session_id)
        return tracker

    while sessions and len(sessions) >= settings.max_sessions:
        evict_oldest_session()

    tracker = sessions[session_id] = ConversionTracker()
    return tracker


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "ofx_converter",
        "version": "1.0.0"
    }


@app.get("/favicon.ico")
async def favicon():
    """Return empty response for favicon to avoid 404 errors."""
    return Response(status_code=204)


def read_and_convert(
    content: bytes,
    file_name: str,
    content_type: Optional[str],
    on_progress: Callable[[str], None]
) -> ConversionResult:
    """Read the upload into text and convert it. Blocking."""
    raw_text = read_statement_text(content, file_name, content_type)
    return conversion_service.convert_detailed(raw_text, file_name, on_progress)


async def convert_statement_background(
    tracker: ConversionTracker,
    run_id: int,
    content: bytes,
    file_name: str,
    content_type: Optional[str]
) -> None:
    """
    Background task to read and convert one statement.

    Args:
        tracker: Session tracker receiving progress
        run_id: Run this task belongs to; stale runs are ignored by the tracker
        content: Uploaded file bytes
        file_name: Original file name
        content_type: MIME type reported by the client
    """
    def on_progress(message: str) -> None:
        tracker.report(run_id, message)

    try:
        # PDF parsing, blocking HTTP and backoff sleeps all stay off the event loop
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, read_and_convert, content, file_name, content_type, on_progress
        )
        tracker.succeed(run_id, result)
        logger.info(f"Run {run_id} for '{file_name}' completed: {result.transaction_count} transactions")

    except OfxConverterException as e:
        logger.error(f"Run {run_id} for '{file_name}' failed: {e.message}")
        tracker.fail(run_id, e.message)

    except Exception as e:
        logger.error(f"Run {run_id} for '{file_name}' failed with unexpected error: {e}", exc_info=True)
        tracker.fail(run_id, str(e) or "An unknown error occurred.")


@app.post("/convert", status_code=202)
async def convert_statement(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(None)
):
    """
    Accept a statement and start background conversion.
    Returns immediately with session and run ids for status polling.

    Submitting a new file in an existing session supersedes its current run.
    """
    file_name = file.filename or "statement"
    logger.info(f"Received file: {file_name} ({file.content_type})")

    try:
        detect_kind(file_name, file.content_type)
    except FileProcessingError as e:
        raise HTTPException(status_code=400, detail=e.message)

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_bytes} bytes."
        )

    session_id = session_id or str(uuid.uuid4())
    tracker = register_session(session_id)
    run_id = tracker.begin(file_name)

    background_tasks.add_task(
        convert_statement_background,
        tracker,
        run_id,
        content,
        file_name,
        file.content_type
    )

    logger.info(f"Run {run_id} queued in session {session_id}")

    return {
        "session_id": session_id,
        "run_id": run_id,
        "status": "accepted",
        "message": "Processing started. Use session_id to check status."
    }


@app.get("/status/{session_id}")
async def get_conversion_status(session_id: str):
    """
    Get status of a session's latest conversion run.

    Args:
        session_id: Session identifier

    Returns:
        Run status information
    """
    tracker = get_tracker(session_id)
    return {"session_id": session_id, **tracker.snapshot()}


@app.post("/reset/{session_id}")
async def reset_session(session_id: str):
    """Return a session to idle, discarding any in-flight run."""
    tracker = get_tracker(session_id)
    tracker.reset()
    return {"session_id": session_id, **tracker.snapshot()}


@app.get("/download/{session_id}")
async def download_ofx(session_id: str):
    """
    Download the converted OFX document.

    Args:
        session_id: Session identifier

    Returns:
        OFX file attachment
    """
    tracker = get_tracker(session_id)
    if tracker.status != ConversionStatus.SUCCESS or tracker.result is None:
        raise HTTPException(status_code=409, detail="No converted document available")

    filename = create_output_filename(tracker.file_name or "")
    return Response(
        content=tracker.result.document,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
