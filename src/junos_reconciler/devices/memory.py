"""In-memory Junos device.

Keeps a committed statement list and a per-session candidate, honours the
exclusive configuration lock and answers ``show configuration <path> |
display set [relative]``. Used for offline planning and tests.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from ..errors import DeviceError
from .base import JunosSession, DeviceConfig

logger = logging.getLogger(__name__)

SHOW_PATTERN = re.compile(r"^show configuration(?: (?P<path>.*?))? \| display set(?P<relative> relative)?$")


@dataclass
class _Failure:
    error: BaseException
    after_commits: int


@dataclass
class MemoryDevice:
    """Shared device state seen by every ``MemorySession``."""
    committed: list[str] = field(default_factory=list)
    lock_owner: Optional[int] = None
    commits: list[str] = field(default_factory=list)
    batches: list[list[str]] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    sessions_opened: int = 0
    sessions_closed: int = 0
    commit_warnings: list[str] = field(default_factory=list)
    _failures: dict[str, _Failure] = field(default_factory=dict)

    @classmethod
    def from_statements(cls, text: str) -> "MemoryDevice":
        """Seed committed configuration from ``set`` lines."""
        device = cls()
        device.committed = apply_statements([], text.splitlines())
        return device

    def fail(self, method: str, error: BaseException, after_commits: int = 0) -> None:
        """Make ``method`` raise ``error`` once ``after_commits`` commits happened."""
        self._failures[method] = _Failure(error, after_commits)

    def check_failure(self, method: str) -> None:
        failure = self._failures.get(method)
        if failure is not None and len(self.commits) >= failure.after_commits:
            raise failure.error

    def accept_commit(self, candidate: list[str]) -> list[str]:
        """Return the configuration that becomes active on commit."""
        return list(candidate)

    def show(self, path: Optional[str], relative: bool, config: Optional[list[str]] = None) -> str:
        lines = self.committed if config is None else config
        if path:
            selected = [line for line in lines if line == path or line.startswith(path + " ")]
        else:
            selected = list(lines)
        if not selected:
            return ""

        if relative and path:
            body = [f"set {line[len(path) + 1:]}" for line in selected if line != path]
        else:
            body = [f"set {line}" for line in selected]
        return "\n".join(["<configuration-output>", *body, "</configuration-output>"])


def apply_statements(config: list[str], statements: list[str]) -> list[str]:
    """Apply ``set``/``delete`` statements to a statement list."""
    result = list(config)
    for statement in statements:
        statement = statement.strip()
        if not statement:
            continue
        verb, _, path = statement.partition(" ")
        if verb == "set":
            if path not in result:
                result.append(path)
        elif verb == "delete":
            result = [line for line in result if line != path and not line.startswith(path + " ")]
        else:
            raise DeviceError(f"syntax error: {statement}")
    return result


class MemorySession(JunosSession):
    """Session against a ``MemoryDevice``."""

    def __init__(self, device_id: str, config: DeviceConfig, device: Optional[MemoryDevice] = None):
        super().__init__(device_id, config)
        self.device = device if device is not None else MemoryDevice()
        self._candidate: Optional[list[str]] = None

    async def open(self) -> None:
        self.device.check_failure("open")
        self.device.sessions_opened += 1
        self._open = True

    async def close(self) -> None:
        if not self._open:
            return
        if self._locked:
            self._candidate = None
            self._release()
        self._open = False
        self.device.sessions_closed += 1

    async def command(self, text: str) -> str:
        self._require_open()
        self.device.commands.append(text)
        self.device.check_failure("command")
        match = SHOW_PATTERN.match(text.strip())
        if match is None:
            raise DeviceError(f"unsupported command: {text}")
        config = self._candidate if self._candidate is not None else None
        return self.device.show(match.group("path"), bool(match.group("relative")), config)

    async def config_set(self, lines: list[str]) -> None:
        self._require_lock()
        self.device.batches.append(list(lines))
        self.device.check_failure("config_set")
        base = self._candidate if self._candidate is not None else self.device.committed
        self._candidate = apply_statements(base, lines)

    async def config_lock(self) -> None:
        self._require_open()
        self.device.check_failure("config_lock")
        owner = self.device.lock_owner
        if owner is not None and owner != id(self):
            raise DeviceError("configuration database locked by another session")
        self.device.lock_owner = id(self)
        self._locked = True

    async def config_clear(self) -> None:
        self.device.check_failure("config_clear")
        self._candidate = None
        if self._locked:
            self._release()

    async def commit_conf(self, label: str) -> list[str]:
        self._require_lock()
        self.device.check_failure("commit_conf")
        if self._candidate is not None:
            self.device.committed = self.device.accept_commit(self._candidate)
        self._candidate = None
        self.device.commits.append(label)
        logger.debug(f"[{self.device_id}] committed: {label}")
        return list(self.device.commit_warnings)

    def _release(self) -> None:
        if self.device.lock_owner == id(self):
            self.device.lock_owner = None
        self._locked = False

    def _require_open(self) -> None:
        if not self._open:
            raise DeviceError("session is not open")

    def _require_lock(self) -> None:
        self._require_open()
        if not self._locked:
            raise DeviceError("configuration database is not locked by this session")
