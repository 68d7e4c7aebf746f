"""
Shared pytest fixtures.

Settings are a process-wide singleton, so every test gets a fresh instance
built from a controlled environment.
"""
import json
from typing import Any, Dict, List, Optional, Union

import pytest

from core.config import reset_settings

ENV_KEYS = [
    "API_KEY", "PORT", "LOG_LEVEL", "MAX_CHUNK_SIZE", "MAX_RETRIES",
    "INITIAL_BACKOFF_SECONDS", "BACKOFF_JITTER_SECONDS", "OFX_CURRENCY",
    "OFX_BANK_ID", "TEMPERATURE", "MAX_SESSIONS",
]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Fresh settings per test, run from tmp_path so no stray .env is read."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


class StubCapability:
    """
    Scripted extraction capability.

    Each call pops the next scripted outcome: a string is returned as the
    response text, an exception instance is raised, and a list of records is
    wrapped into {"transactions": [...]}.
    """

    def __init__(self, outcomes: List[Union[str, Exception, List[Dict[str, Any]]]]):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def call(self, prompt: str, schema: Dict[str, Any], options: Optional[Any] = None) -> str:
        self.calls.append({"prompt": prompt, "schema": schema, "options": options})
        if not self.outcomes:
            raise AssertionError("StubCapability called more times than scripted")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, list):
            return json.dumps({"transactions": outcome})
        return outcome


@pytest.fixture
def sleeps():
    """Records requested waits instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
    return _sleep


@pytest.fixture
def progress():
    return []


@pytest.fixture
def on_progress(progress):
    return progress.append


def build_pdf(pages: List[List[str]]) -> bytes:
    """
    Build a minimal PDF with one Helvetica text line per string.

    Each inner list is a page; an empty list gives a blank page. Strings must
    not contain parentheses or backslashes.
    """
    page_numbers = [4 + 2 * i for i in range(len(pages))]
    kids = " ".join(f"{number} 0 R" for number in page_numbers)
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_number, lines in zip(page_numbers, pages):
        operators = []
        if lines:
            operators = ["BT", "/F1 12 Tf", "72 720 Td"]
            for i, line in enumerate(lines):
                if i:
                    operators.append("0 -20 Td")
                operators.append(f"({line}) Tj")
            operators.append("ET")
        stream = "\n".join(operators)
        objects.append(
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_number + 1} 0 R >>"
        )
        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)
