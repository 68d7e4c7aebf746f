"""
LLM integration for transaction extraction.

This package contains:
- client: Gemini REST client and the extraction capability interface
- extract: Per-chunk extraction with rate-limit retries
- prompts: Extraction prompt builder
"""
