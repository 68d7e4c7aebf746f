"""
Service layer for business logic.

This package contains the conversion service that orchestrates the
chunk, extract, normalize and export pipeline, and the run tracker
that reports conversion status per client session.
"""
