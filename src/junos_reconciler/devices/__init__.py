"""Device session implementations."""
from typing import Optional

from .base import JunosSession, DeviceConfig
from .memory import MemoryDevice, MemorySession
from .netconf import NetconfSession

SESSION_TYPES = {
    "netconf": NetconfSession,
    "memory": MemorySession,
}


def create_session(
    device_id: str,
    config: dict,
    memory_device: Optional[MemoryDevice] = None,
) -> JunosSession:
    """Factory function to create a session from an inventory entry.

    Args:
        device_id: Inventory key of the device
        config: Device configuration mapping
        memory_device: Shared state for ``memory`` sessions

    Raises:
        ValueError: If the device type is unknown
    """
    device_type = config.get("type", "netconf")
    if device_type not in SESSION_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")

    device_config = DeviceConfig(
        name=config.get("name", device_id),
        host=config.get("host", ""),
        type=device_type,
        port=config.get("port", 830),
        username=config.get("username", ""),
        password=config.get("password"),
        password_env=config.get("password_env", "JUNOS_PASSWORD"),
        key_file=config.get("key_file"),
        timeout=config.get("timeout", 30),
        retries=config.get("retries", 3),
        retry_delay=config.get("retry_delay", 2),
        strict_parse=config.get("strict_parse", True),
    )

    if device_type == "memory":
        return MemorySession(device_id, device_config, memory_device)
    return SESSION_TYPES[device_type](device_id, device_config)


__all__ = [
    "JunosSession",
    "DeviceConfig",
    "MemoryDevice",
    "MemorySession",
    "NetconfSession",
    "SESSION_TYPES",
    "create_session",
]
