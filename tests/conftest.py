"""Shared fixtures: an in-memory device and a reconciler bound to it."""
import pytest

from junos_reconciler.devices import DeviceConfig, MemoryDevice, MemorySession
from junos_reconciler.engine import EngineContext, Reconciler, StatementParser
from junos_reconciler.utils.audit_log import ChangeTracker


def memory_context(device: MemoryDevice, strict: bool = True, tracker=None) -> EngineContext:
    config = DeviceConfig(name="lab", type="memory")
    return EngineContext(
        session_factory=lambda: MemorySession("lab", config, device),
        parser=StatementParser(strict=strict),
        tracker=tracker,
        device_id="lab",
    )


@pytest.fixture
def device():
    """Empty in-memory device."""
    return MemoryDevice()


@pytest.fixture
def tracker():
    return ChangeTracker("lab")


@pytest.fixture
def reconciler(device, tracker):
    """Reconciler against the in-memory device, with change tracking."""
    return Reconciler(memory_context(device, tracker=tracker))
