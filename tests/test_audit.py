"""Tests for change auditing and timing logs."""
import logging

import pytest

from junos_reconciler.utils.audit_log import (
    ChangeRecord,
    ChangeTracker,
    get_recent_changes,
    setup_audit_logging,
)
from junos_reconciler.utils.logging_config import (
    get_log_file,
    get_log_level,
    setup_logging,
    timed,
    timed_section,
)


class TestChangeRecord:
    """Tests for ChangeRecord serialization."""

    def test_json_round_trip(self):
        """Records survive to_json/from_json."""
        record = ChangeRecord(
            timestamp="2024-01-01T00:00:00+00:00",
            device_id="mx-core",
            operation="create",
            resource_type="junos_bgp_group",
            resource_id="G1_-_default",
            success=True,
            statements=["set protocols bgp group G1 type external"],
        )
        assert ChangeRecord.from_json(record.to_json()) == record


class TestChangeTracker:
    """Tests for ChangeTracker."""

    def test_log_and_read_back(self, tmp_path):
        """Logged changes are written as JSON lines and read most recent first."""
        audit_file = setup_audit_logging(str(tmp_path))
        tracker = ChangeTracker("mx-core")
        tracker.log_change("create", "junos_bgp_group", "G1_-_default", True, ["set a"])
        tracker.log_change("delete", "junos_vstp_vlan", "100_-_default", False, error="boom")
        ChangeTracker("mx-edge").log_change("create", "junos_bgp_group", "G2_-_default", True)

        records = get_recent_changes(audit_file, device_id="mx-core")
        assert [r.operation for r in records] == ["delete", "create"]
        assert records[0].error == "boom"
        assert len(tracker.records) == 2

        by_type = get_recent_changes(audit_file, resource_type="junos_bgp_group")
        assert {r.device_id for r in by_type} == {"mx-core", "mx-edge"}

    def test_limit_and_malformed_lines(self, tmp_path):
        """Malformed lines are skipped and the limit applies."""
        audit_file = tmp_path / "audit.log"
        record = ChangeRecord("t", "d", "create", "junos_bgp_group", "G1_-_default", True)
        audit_file.write_text("not json\n" + (record.to_json() + "\n") * 5)
        assert len(get_recent_changes(str(audit_file), limit=3)) == 3

    def test_missing_log(self, tmp_path):
        """A missing audit log has no changes."""
        assert get_recent_changes(str(tmp_path / "none.log")) == []


class TestLoggingConfig:
    """Tests for logging setup."""

    def test_level_from_env(self, monkeypatch):
        """Log level is read from the environment."""
        monkeypatch.setenv("JUNOS_RECONCILER_LOG_LEVEL", "debug")
        assert get_log_level() == logging.DEBUG
        monkeypatch.setenv("JUNOS_RECONCILER_LOG_LEVEL", "nonsense")
        assert get_log_level() == logging.INFO

    def test_setup_writes_file(self, monkeypatch, tmp_path):
        """Setup creates the log file and is idempotent."""
        log_file = tmp_path / "logs" / "reconciler.log"
        monkeypatch.setenv("JUNOS_RECONCILER_LOG_FILE", str(log_file))
        assert get_log_file() == log_file

        setup_logging(console=False)
        setup_logging(console=False)
        logging.getLogger("junos_reconciler.test").info("hello")

        assert log_file.exists()
        assert (tmp_path / "logs" / "junos-reconciler-perf.log").exists()
        assert len(logging.getLogger("junos_reconciler").handlers) == 1

    @pytest.mark.asyncio
    async def test_timed_section_logs(self, caplog):
        """Timed sections report their outcome."""
        caplog.set_level(logging.INFO, logger="junos_reconciler.perf")
        async with timed_section("create", device_id="mx-core", resource="junos_bgp_group"):
            pass
        with pytest.raises(RuntimeError):
            async with timed_section("delete", device_id="mx-core"):
                raise RuntimeError("boom")
        messages = [r.getMessage() for r in caplog.records]
        assert any("create" in m and "OK" in m and "resource=junos_bgp_group" in m for m in messages)
        assert any("delete" in m and "FAIL: boom" in m for m in messages)

    @pytest.mark.asyncio
    async def test_timed_decorator(self, caplog):
        """Decorated coroutines use the device_id of their instance."""
        caplog.set_level(logging.INFO, logger="junos_reconciler.perf")

        class Session:
            device_id = "mx-core"

            @timed("commit")
            async def commit(self):
                return ["warning"]

        assert await Session().commit() == ["warning"]
        assert any("commit" in r.getMessage() and "mx-core" in r.getMessage() for r in caplog.records)
