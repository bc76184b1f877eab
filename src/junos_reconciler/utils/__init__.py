"""Logging, audit and retry helpers."""
from .connection import with_retry
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)
from .audit_log import ChangeTracker, ChangeRecord, setup_audit_logging, get_recent_changes

__all__ = [
    "with_retry",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "ChangeTracker",
    "ChangeRecord",
    "setup_audit_logging",
    "get_recent_changes",
]
