"""YAML device inventory and per-device engine contexts."""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..devices import create_session, JunosSession, MemoryDevice
from ..engine import EngineContext, StatementParser
from ..utils.audit_log import ChangeTracker

logger = logging.getLogger(__name__)

INVENTORY_ENV = "JUNOS_RECONCILER_INVENTORY"
INVENTORY_NAME = "devices.yaml"


def inventory_search_paths() -> list[Path]:
    """Candidate inventory files, first match wins."""
    paths = []
    if os.environ.get(INVENTORY_ENV):
        paths.append(Path(os.environ[INVENTORY_ENV]))
    paths += [
        Path.cwd() / "configs" / INVENTORY_NAME,
        Path.cwd() / INVENTORY_NAME,
        Path.home() / ".config" / "junos-reconciler" / INVENTORY_NAME,
        Path("/etc/junos-reconciler") / INVENTORY_NAME,
    ]
    return paths


class DeviceInventory:
    """Devices this tool can reconcile, loaded from YAML.

    ```yaml
    defaults:
      username: automation
      password_env: JUNOS_PASSWORD
    devices:
      mx-core:
        host: 192.0.2.1
      lab:
        type: memory
        strict_parse: false
    ```

    Each operation gets its own session from ``session_factory``; one
    ``EngineContext`` (and so one read lock) is kept per device.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._devices: dict[str, dict] = {}
        self._contexts: dict[str, EngineContext] = {}
        self._memory_devices: dict[str, MemoryDevice] = {}
        self._load_config()

    def _find_config(self) -> str:
        for path in inventory_search_paths():
            if path.exists():
                return str(path)
        raise FileNotFoundError(
            f"No {INVENTORY_NAME} found; pass --config, set {INVENTORY_ENV} "
            f"or create ./configs/{INVENTORY_NAME}"
        )

    def _load_config(self) -> None:
        with open(self.config_path) as f:
            raw = yaml.safe_load(f) or {}

        defaults = raw.get("defaults") or {}
        # device values override defaults
        self._devices = {
            device_id: {**defaults, **(settings or {})}
            for device_id, settings in (raw.get("devices") or {}).items()
        }
        logger.debug(f"Loaded {len(self._devices)} device(s) from {self.config_path}")

    def get_device_ids(self) -> list[str]:
        return list(self._devices)

    def get_device_config(self, device_id: str) -> dict:
        """Merged settings of a device; KeyError if it is not listed."""
        if device_id not in self._devices:
            raise KeyError(f"Unknown device: {device_id}")
        return self._devices[device_id]

    def new_session(self, device_id: str) -> JunosSession:
        """Create a new, unopened session for a device."""
        config = self.get_device_config(device_id)
        memory_device = None
        if config.get("type") == "memory":
            memory_device = self._memory_devices.setdefault(device_id, MemoryDevice())
        return create_session(device_id, config, memory_device)

    def get_context(self, device_id: str, audit: bool = True) -> EngineContext:
        """Get or create the engine context of a device."""
        if device_id not in self._contexts:
            config = self.get_device_config(device_id)
            self._contexts[device_id] = EngineContext(
                session_factory=lambda: self.new_session(device_id),
                parser=StatementParser(strict=config.get("strict_parse", True)),
                tracker=ChangeTracker(device_id) if audit else None,
                device_id=device_id,
            )
        return self._contexts[device_id]
