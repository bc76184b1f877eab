"""Base device session abstraction."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class DeviceConfig:
    """Connection settings for a Junos device."""
    name: str
    host: str = ""
    type: str = "netconf"
    port: int = 830
    username: str = ""
    password: Optional[str] = None
    password_env: str = "JUNOS_PASSWORD"
    key_file: Optional[str] = None
    timeout: int = 30
    retries: int = 3
    retry_delay: float = 2
    strict_parse: bool = True

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


class JunosSession(ABC):
    """One logical configuration session on a device.

    Used as an async context manager: entering opens the session, leaving
    releases the configuration lock (when held) and closes it, on every
    exit path.
    """

    def __init__(self, device_id: str, config: DeviceConfig):
        self.device_id = device_id
        self.config = config
        self._open = False
        self._locked = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_locked(self) -> bool:
        return self._locked

    @abstractmethod
    async def open(self) -> None:
        """Establish the session."""

    @abstractmethod
    async def close(self) -> None:
        """Release the configuration lock if held, then end the session."""

    @abstractmethod
    async def command(self, text: str) -> str:
        """Run an operational command and return its raw text output."""

    @abstractmethod
    async def config_set(self, lines: list[str]) -> None:
        """Load ``set``/``delete`` statements into the candidate configuration."""

    @abstractmethod
    async def config_lock(self) -> None:
        """Acquire the exclusive candidate configuration lock."""

    @abstractmethod
    async def config_clear(self) -> None:
        """Discard uncommitted changes and release the lock."""

    @abstractmethod
    async def commit_conf(self, label: str) -> list[str]:
        """Commit the candidate configuration.

        Returns:
            Warnings reported by the device
        """

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
