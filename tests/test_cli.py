"""Tests for the command line."""
import json

import pytest
import yaml

from junos_reconciler.cli import load_resources, main

GROUP = """
resource: bgp_group
name: G1
hold_time: 30
passive: true
---
resource: junos_vstp_vlan
vlan_id: "100"
hello_time: 2
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Isolated log locations and a memory device inventory."""
    monkeypatch.setenv("JUNOS_RECONCILER_LOG_FILE", str(tmp_path / "logs" / "cli.log"))
    (tmp_path / "devices.yaml").write_text("devices:\n  lab:\n    type: memory\n")
    (tmp_path / "group.yaml").write_text(GROUP)
    return tmp_path


def run(workdir, *args) -> int:
    return main([
        "--config", str(workdir / "devices.yaml"),
        "--log-dir", str(workdir / "audit"),
        "--json",
        *args,
    ])


class TestLoadResources:
    """Tests for resource files."""

    def test_documents(self, workdir):
        """Each YAML document is one resource."""
        resources = load_resources(workdir / "group.yaml")
        assert [rtype.name for rtype, _ in resources] == ["junos_bgp_group", "junos_vstp_vlan"]
        assert resources[0][1].hold_time == 30
        assert resources[1][1].vlan_id == "100"

    def test_unknown_field(self, tmp_path):
        """Unknown option names are rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("resource: bgp_group\nname: G1\nhold: 30\n")
        with pytest.raises(ValueError, match="unknown field"):
            load_resources(path)

    def test_import_policies(self, tmp_path):
        """Import policies are written as import."""
        path = tmp_path / "policies.yaml"
        path.write_text("resource: bgp_group\nname: G1\nimport: [from-peers]\nexport: [to-peers]\n")
        [(_, options)] = load_resources(path)
        assert options.import_ == ["from-peers"]
        assert options.export == ["to-peers"]

    def test_missing_resource_type(self, tmp_path):
        """Every document names its resource type."""
        path = tmp_path / "bad.yaml"
        path.write_text("name: G1\n")
        with pytest.raises(ValueError, match="has no resource type"):
            load_resources(path)


class TestCommands:
    """Tests for CLI commands."""

    def test_types(self, workdir, capsys):
        """types lists every resource with its id format."""
        assert run(workdir, "types") == 0
        types = {entry["resource"]: entry["id"] for entry in json.loads(capsys.readouterr().out)}
        assert types["junos_bgp_group"] == "<name>_-_<routing_instance>"
        assert len(types) == 7

    def test_plan(self, workdir, capsys):
        """plan prints statements without a device."""
        assert run(workdir, "plan", str(workdir / "group.yaml")) == 0
        plans = json.loads(capsys.readouterr().out)
        assert plans[0]["id"] == "G1_-_default"
        assert plans[0]["statements"] == [
            "set protocols bgp group G1 type external",
            "set protocols bgp group G1 hold-time 30",
            "set protocols bgp group G1 passive",
        ]
        assert plans[1]["statements"] == [
            "set protocols vstp vlan 100",
            "set protocols vstp vlan 100 hello-time 2",
        ]

    def test_plan_invalid(self, workdir, capsys):
        """Validation errors exit with 1."""
        path = workdir / "bad.yaml"
        path.write_text("resource: bgp_group\nname: G1\nhold_time: 1\n")
        assert run(workdir, "plan", str(path)) == 1
        assert "hold_time must be between 3 and 65535" in capsys.readouterr().err

    def test_apply_and_changes(self, workdir, capsys):
        """apply commits each resource and records the change."""
        assert run(workdir, "--device", "lab", "apply", str(workdir / "group.yaml")) == 0
        results = json.loads(capsys.readouterr().out)
        assert [r["resource_id"] for r in results] == ["G1_-_default", "100_-_default"]

        assert run(workdir, "--device", "lab", "changes", "--type", "junos_vstp_vlan") == 0
        changes = json.loads(capsys.readouterr().out)
        assert len(changes) == 1
        assert changes[0]["success"] is True
        assert changes[0]["statements"][0] == "set protocols vstp vlan 100"

    def test_read_missing(self, workdir, capsys):
        """read prints null for absent resources."""
        assert run(workdir, "--device", "lab", "read", str(workdir / "group.yaml")) == 0
        assert json.loads(capsys.readouterr().out) == [None, None]

    def test_import_not_found(self, workdir, capsys):
        """import of an absent resource fails."""
        assert run(workdir, "--device", "lab", "import", "bgp_group", "G1_-_default") == 1
        assert "don't find junos_bgp_group" in capsys.readouterr().err

    def test_import_bad_id(self, workdir, capsys):
        """Malformed identifiers fail."""
        assert run(workdir, "--device", "lab", "import", "bgp_group", "G1") == 1
        assert "missing element(s)" in capsys.readouterr().err

    def test_device_required(self, workdir, capsys):
        """Device commands need --device."""
        assert run(workdir, "apply", str(workdir / "group.yaml")) == 1
        assert "--device is required" in capsys.readouterr().err

    def test_unknown_device(self, workdir, capsys):
        """Unknown devices fail cleanly."""
        assert run(workdir, "--device", "nope", "read", str(workdir / "group.yaml")) == 1
        assert "Unknown device: nope" in capsys.readouterr().err

    def test_yaml_output(self, workdir, capsys):
        """Without --json output is YAML."""
        args = ["--log-dir", str(workdir / "audit"), "plan", str(workdir / "group.yaml")]
        assert main(args) == 0
        plans = yaml.safe_load(capsys.readouterr().out)
        assert plans[0]["resource"] == "junos_bgp_group"
