"""Error taxonomy for the reconciliation engine.

Every error carries the resource type, the identifying name and the
operation phase so that callers can report it without extra context.
"""
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    """Operation phase an error occurred in."""
    VALIDATE = "validate"
    LOCK = "lock"
    PRECHECK = "precheck"
    SET = "set"
    COMMIT = "commit"
    VERIFY = "verify"
    READ = "read"
    IMPORT = "import"
    ABORT = "abort"


class ReconcileError(Exception):
    """Base class for all engine errors."""

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        name: str = "",
        phase: Optional[Phase] = None,
    ):
        super().__init__(message)
        self.message = message
        self.resource_type = resource_type
        self.name = name
        self.phase = phase

    def with_context(
        self,
        resource_type: str,
        name: str,
        phase: Optional[Phase] = None,
    ) -> "ReconcileError":
        """Fill in missing context and return self."""
        if not self.resource_type:
            self.resource_type = resource_type
        if not self.name:
            self.name = name
        if self.phase is None:
            self.phase = phase
        return self

    def __str__(self) -> str:
        parts = []
        if self.resource_type:
            parts.append(self.resource_type)
        if self.name:
            parts.append(f'"{self.name}"')
        if self.phase is not None:
            parts.append(f"[{self.phase.value}]")
        if not parts:
            return self.message
        return f"{' '.join(parts)}: {self.message}"


class ValidationError(ReconcileError):
    """User supplied options are malformed or contradictory."""

    def __init__(self, errors: list[str], **kwargs):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors), **kwargs)


class ParseError(ReconcileError):
    """Unexpected or malformed text in a device read."""

    def __init__(self, message: str, line: str = "", **kwargs):
        self.line = line
        if line:
            message = f"{message} (line: {line!r})"
        super().__init__(message, **kwargs)


class IdentityError(ReconcileError):
    """Resource identifier cannot be decomposed."""


class NotFoundError(ReconcileError):
    """Resource does not exist on the device."""


class PreconditionError(ReconcileError):
    """Referenced object is missing or the target already exists."""


class DeviceError(ReconcileError):
    """Device or transport rejected a request."""


class CommitError(DeviceError):
    """Device rejected the commit."""


class ConsistencyError(ReconcileError):
    """Commit succeeded but the device state contradicts the expected outcome."""


class TransactionAbortError(ReconcileError):
    """Discarding the candidate configuration failed after a primary error.

    Both errors are kept: the device may still be locked.
    """

    def __init__(self, primary: BaseException, cleanup: BaseException, **kwargs):
        self.primary = primary
        self.cleanup = cleanup
        super().__init__(
            f"{primary}; additionally failed to clear candidate configuration: {cleanup}",
            **kwargs,
        )
