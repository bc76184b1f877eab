"""Configuration management."""
from .inventory import DeviceInventory

__all__ = ["DeviceInventory"]
