"""
Prompt builder for transaction extraction.
"""
from core.schema import Chunk


def build_extraction_prompt(chunk: Chunk, file_name: str) -> str:
    """
    Build the extraction instruction for one statement chunk.

    Args:
        chunk: Statement chunk with its position
        file_name: Original statement file name

    Returns:
        Complete prompt string
    """
    return f"""Analyze the following portion of a financial statement from the file named "{file_name}".
This is part {chunk.index} of {chunk.total}.
The content could be from a PDF, CSV, or TXT file.
Your task is to meticulously extract all individual financial transactions found ONLY within this specific portion of the text.
For each transaction, identify the date, a clean description, and the amount.
Ensure that debits, withdrawals, and payments are represented as negative numbers, and credits or deposits are positive numbers.
Do not include any opening or closing balance rows, summary information, or page headers/footers in the list of transactions.
If no transactions are present in this chunk, return an empty array.
Provide the output in the specified JSON format.

Statement Portion:
---
{chunk.text}
---
"""
