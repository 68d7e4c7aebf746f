"""
Core processing modules for statement to OFX conversion.

This package contains:
- chunking: Line-aligned splitting of statement text
- config: Application configuration and settings
- exceptions: Custom exception classes
- exporters: OFX document export
- logger: Logging configuration
- normalize: Validation and normalization of extracted records
- parsing: Statement file reading (PDF, CSV, TXT)
- schema: Pydantic models for transactions and results
"""
