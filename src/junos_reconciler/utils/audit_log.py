"""Change audit trail.

Each transaction the reconciler runs against a device becomes one JSON
line in ``audit.log``: what was attempted, the statements sent, the
warnings the commit returned, and the error if it failed. The audit
logger does not propagate, so the trail stays free of debug noise.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("junos_reconciler.audit")

DEFAULT_LOG_DIR = "~/.junos-reconciler"
AUDIT_FILE_NAME = "audit.log"


def default_audit_file() -> str:
    return os.path.join(os.path.expanduser(DEFAULT_LOG_DIR), AUDIT_FILE_NAME)


def setup_audit_logging(log_dir: Optional[str] = None) -> str:
    """Point the audit logger at ``<log_dir>/audit.log``.

    Args:
        log_dir: Directory for the trail, ~/.junos-reconciler/ if omitted

    Returns:
        Path of the audit file
    """
    directory = Path(os.path.expanduser(log_dir or DEFAULT_LOG_DIR))
    directory.mkdir(parents=True, exist_ok=True)
    audit_file = str(directory / AUDIT_FILE_NAME)

    handler = RotatingFileHandler(audit_file, maxBytes=10 * 1024 * 1024, backupCount=10)
    handler.setFormatter(logging.Formatter("%(message)s"))

    audit_logger.handlers.clear()
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """One create, update or delete transaction."""
    timestamp: str
    device_id: str
    operation: str
    resource_type: str
    resource_id: str
    success: bool
    statements: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, line: str) -> "ChangeRecord":
        return cls(**json.loads(line))


class ChangeTracker:
    """Writes audit records for one device and keeps them in memory."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.records: list[ChangeRecord] = []

    def log_change(
        self,
        operation: str,
        resource_type: str,
        resource_id: str,
        success: bool,
        statements: Optional[list[str]] = None,
        warnings: Optional[list[str]] = None,
        error: Optional[str] = None,
    ) -> ChangeRecord:
        """
        Record a transaction outcome.

        Args:
            operation: create, update or delete
            resource_type: Resource type name, e.g. junos_bgp_group
            resource_id: Composite resource identifier
            success: Whether the transaction committed and verified
            statements: Statements sent to the device
            warnings: Commit warnings returned by the device
            error: Failure message

        Returns:
            The record written
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            device_id=self.device_id,
            operation=operation,
            resource_type=resource_type,
            resource_id=resource_id,
            success=success,
            statements=list(statements or []),
            warnings=list(warnings or []),
            error=error,
        )
        self.records.append(record)
        audit_logger.info(record.to_json())
        return record


def _read_records(log_file: str) -> Iterator[ChangeRecord]:
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                yield ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                logger.debug(f"skipping malformed audit line: {line.strip()[:80]}")


def get_recent_changes(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Most recent audit records first, optionally filtered.

    Args:
        log_file: Audit file, ~/.junos-reconciler/audit.log if omitted
        device_id: Only records of this device
        resource_type: Only records of this resource type
        limit: Maximum number of records
    """
    log_file = log_file or default_audit_file()
    if not os.path.exists(log_file):
        return []

    matching = [
        record
        for record in _read_records(log_file)
        if (device_id is None or record.device_id == device_id)
        and (resource_type is None or record.resource_type == resource_type)
    ]
    return matching[::-1][:limit]
