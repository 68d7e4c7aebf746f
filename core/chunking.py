"""
Line-aligned chunking of statement text.
Keeps each statement line intact so a transaction row is never split
across two extraction requests.
"""
from typing import List

from core.logger import setup_logger
from core.schema import Chunk

logger = setup_logger(__name__)


def create_chunks(text: str, max_size: int) -> List[str]:
    """
    Split text into chunks of at most max_size characters at newline boundaries.

    A single line longer than max_size becomes its own oversized chunk.
    Whitespace-only buffers are dropped.

    Args:
        text: Raw statement text
        max_size: Soft upper bound on chunk length

    Returns:
        Ordered list of chunk strings
    """
    if max_size < 1:
        raise ValueError("max_size must be a positive integer")

    if len(text) <= max_size:
        return [text]

    chunks: List[str] = []
    current = ""

    for line in text.split("\n"):
        if len(current) + len(line) + 1 > max_size:
            if current.strip():
                chunks.append(current)
            current = line + "\n"
        else:
            current += line + "\n"

    if current.strip():
        chunks.append(current)

    oversized = sum(1 for c in chunks if len(c) > max_size)
    if oversized:
        logger.warning(f"{oversized} chunk(s) exceed {max_size} chars because of long lines")

    return chunks


def build_chunks(text: str, max_size: int) -> List[Chunk]:
    """Wrap create_chunks output with 1-based positions."""
    parts = create_chunks(text, max_size)
    total = len(parts)
    return [Chunk(text=part, index=i, total=total) for i, part in enumerate(parts, 1)]
