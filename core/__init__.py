"""
Core utilities and configuration for the stoopr ingestion job.

This package provides foundational components used throughout the job:

Modules:
    config: Immutable settings loaded from environment variables
    database: Async engine and session factory for the Postgres backend
    exceptions: Exception hierarchy with structured context
    logging: Logging configuration

Usage:
    from core.config import load_settings
    from core.exceptions import ConfigError, FetchError, SinkError
    from core.logging import setup_logging

Example:
    settings = load_settings()   # raises ConfigError before any I/O
    setup_logging(settings)
"""

__all__ = [
    "config",
    "database",
    "exceptions",
    "logging",
]
