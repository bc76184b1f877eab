"""Tests for parsing display set output back into options."""
import pytest

from junos_reconciler.engine import StatementBuilder, StatementParser, statement_lines
from junos_reconciler.errors import ParseError
from junos_reconciler.resources import (
    BgpGroupOptions,
    BgpNeighborOptions,
    NatStaticRuleOptions,
    SamplingInstanceOptions,
    StaticNatThen,
    VstpInterfaceOptions,
    VstpVlanGroupOptions,
    VstpVlanOptions,
)
from junos_reconciler.resources.bgp import (
    BfdLivenessDetection,
    Family,
    GracefulRestart,
    Multipath,
    PrefixLimit,
)
from junos_reconciler.resources.sampling_instance import (
    FlowServerInet,
    SamplingInput,
    SamplingOutputInet,
)


@pytest.fixture
def parser():
    return StatementParser()


class TestStatementLines:
    """Tests for extracting statement lines from raw output."""

    def test_markers(self):
        """Lines outside the configuration-output markers are dropped."""
        output = "\n".join([
            "warning: banner",
            "<configuration-output>",
            "set hold-time 30",
            "",
            "set passive",
            "</configuration-output>",
            "{master:0}",
        ])
        assert statement_lines(output) == ["hold-time 30", "passive"]

    def test_without_markers(self):
        """Plain output is used as is, minus the set keyword."""
        assert statement_lines("set passive\n  set hold-time 30  \n") == ["passive", "hold-time 30"]

    def test_empty_output(self):
        """Empty output has no statements."""
        assert statement_lines("") == []
        assert statement_lines("<configuration-output>\n</configuration-output>") == []


class TestStatementParser:
    """Tests for StatementParser."""

    def test_singleton_block_merges_lines(self, parser):
        """Several lines of the same block fill one block."""
        options = parser.parse(
            ["bfd-liveness-detection multiplier 3", "bfd-liveness-detection version automatic"],
            BgpGroupOptions,
        )
        assert options.bfd_liveness_detection == BfdLivenessDetection(multiplier=3, version="automatic")

    def test_scalars_and_flags(self, parser):
        """Integers are converted and flags set."""
        options = parser.parse(["type internal", "hold-time 30", "passive"], BgpGroupOptions)
        assert options.type == "internal"
        assert options.hold_time == 30
        assert options.passive is True
        assert options.multihop is False

    def test_quoted_values(self, parser):
        """Quotes are stripped from quoted fields."""
        options = parser.parse(['description "core peers"'], BgpGroupOptions)
        assert options.description == "core peers"

    def test_lists_accumulate(self, parser):
        """Repeated list statements append in order."""
        options = parser.parse(["import p1", "import p2"], BgpGroupOptions)
        assert options.import_ == ["p1", "p2"]

    def test_keyed_find_or_create(self, parser):
        """Lines for the same key merge into one entry."""
        options = parser.parse(
            [
                "family inet unicast",
                "family inet unicast prefix-limit maximum 100",
                "family inet flow",
                "family inet unicast prefix-limit teardown 80",
                "family inet6 unicast",
            ],
            BgpGroupOptions,
        )
        by_key = {entry.nlri_type: entry for entry in options.family_inet}
        assert set(by_key) == {"unicast", "flow"}
        assert by_key["unicast"].prefix_limit == PrefixLimit(maximum=100, teardown=80)
        assert by_key["flow"].prefix_limit is None
        assert [entry.nlri_type for entry in options.family_inet6] == ["unicast"]

    def test_presence_block(self, parser):
        """A bare presence keyword creates an empty block."""
        options = parser.parse(["graceful-restart"], BgpGroupOptions)
        assert options.graceful_restart == GracefulRestart()

    def test_implied_flag(self, parser):
        """Reading a dependent flag also sets the flag it implies."""
        options = parser.parse(["advertise-external conditional"], BgpGroupOptions)
        assert options.advertise_external is True
        assert options.advertise_external_conditional is True

    def test_metric_out_variants(self, parser):
        """Keywords sharing a prefix are told apart."""
        options = parser.parse(["metric-out igp -10"], BgpGroupOptions)
        assert options.metric_out_igp is True
        assert options.metric_out_igp_offset == -10
        assert options.metric_out is None

        options = parser.parse(["metric-out 100"], BgpGroupOptions)
        assert options.metric_out == 100
        assert options.metric_out_igp is False

        options = parser.parse(["metric-out igp delay-med-update"], BgpGroupOptions)
        assert options.metric_out_igp_delay_med_update is True
        assert options.metric_out_igp is True

    def test_discriminated_block(self, parser):
        """The type token after the block keyword sets the discriminator."""
        options = parser.parse(
            ['then static-nat prefix "10.0.0.0/24"', "then static-nat prefix mapped-port 8080"],
            NatStaticRuleOptions,
        )
        assert options.then == StaticNatThen(type="prefix", prefix="10.0.0.0/24", mapped_port=8080)

    def test_integer_error(self, parser):
        """A non-integer value for an integer field fails with the line."""
        with pytest.raises(ParseError) as excinfo:
            parser.parse(["hold-time abc"], BgpGroupOptions)
        assert "failed to convert value from 'abc' to integer" in str(excinfo.value)
        assert excinfo.value.line == "hold-time abc"

    def test_strict_rejects_unknown(self, parser):
        """Strict mode fails on unknown statements."""
        with pytest.raises(ParseError) as excinfo:
            parser.parse(["unknown-knob 1"], BgpGroupOptions)
        assert "unrecognized statement for BgpGroupOptions" in str(excinfo.value)

    def test_lenient_skips_unknown(self):
        """Non-strict mode skips unknown statements."""
        options = StatementParser(strict=False).parse(["unknown-knob 1", "passive"], BgpGroupOptions)
        assert options.passive is True

    def test_ignore_prefixes(self, parser):
        """Lines owned by child resources are skipped."""
        options = parser.parse(
            ["passive", "neighbor 192.0.2.1", "neighbor 192.0.2.1 peer-as 65001"],
            BgpGroupOptions,
            ignore=("neighbor ",),
        )
        assert options.passive is True

    def test_seed_keeps_identity(self, parser):
        """Parsing into a seed keeps its identity fields."""
        options = parser.parse(["vlan 10", "vlan 20"], VstpVlanGroupOptions, seed=VstpVlanGroupOptions(name="g1"))
        assert options.name == "g1"
        assert options.vlan == ["10", "20"]


class TestRoundTrip:
    """Built statements parse back into the same options."""

    def test_bgp_group(self, parser):
        """BGP group with blocks, keyed entries and lists."""
        original = BgpGroupOptions(
            name="G1",
            type="internal",
            bfd_liveness_detection=BfdLivenessDetection(multiplier=3, minimum_interval=300),
            description="core peers",
            family_inet=[
                Family(nlri_type="unicast", prefix_limit=PrefixLimit(maximum=100, teardown=80)),
                Family(nlri_type="flow"),
            ],
            graceful_restart=GracefulRestart(restart_time=120),
            hold_time=30,
            import_=["p1", "p2"],
            local_as="65000.10",
            local_as_private=True,
            local_as_loops=2,
            local_preference=0,
            metric_out_igp=True,
            metric_out_igp_offset=5,
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(lines, BgpGroupOptions, seed=BgpGroupOptions(name="G1"))
        assert parsed == original

    def test_sampling_instance(self, parser):
        """Sampling instance with keyed flow servers inside a block."""
        original = SamplingInstanceOptions(
            name="s1",
            input=SamplingInput(rate=100, run_length=0),
            family_inet_output=SamplingOutputInet(
                flow_server=[
                    FlowServerInet(
                        hostname="192.0.2.10",
                        port=2055,
                        version=5,
                        aggregation_source_destination_prefix=True,
                        aggregation_source_destination_prefix_caida_compliant=True,
                    )
                ],
                extension_service=["svc-a"],
            ),
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(lines, SamplingInstanceOptions, seed=SamplingInstanceOptions(name="s1"))
        assert parsed == original

    def test_nat_rule(self, parser):
        """NAT rule with a discriminated then block."""
        original = NatStaticRuleOptions(
            rule_set="rs1",
            name="r1",
            destination_address_name="web-servers",
            destination_port=80,
            destination_port_to=90,
            source_port=["1024 to 2048"],
            then=StaticNatThen(type="prefix-name", prefix="pool-a", mapped_port=8080),
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(
            lines, NatStaticRuleOptions, seed=NatStaticRuleOptions(rule_set="rs1", name="r1")
        )
        assert parsed == original

    def test_bgp_neighbor(self, parser):
        """BGP neighbor with a presence block and a zero value."""
        original = BgpNeighborOptions(
            ip="192.0.2.1",
            group="G1",
            family_inet6=[Family(nlri_type="unicast")],
            local_preference=0,
            multipath=Multipath(),
            out_delay=10,
            peer_as="65001",
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(
            lines, BgpNeighborOptions, seed=BgpNeighborOptions(ip="192.0.2.1", group="G1")
        )
        assert parsed == original

    def test_vstp_vlan(self, parser):
        """VSTP VLAN timers and priorities."""
        original = VstpVlanOptions(
            vlan_id="100",
            backup_bridge_priority="8k",
            bridge_priority="0",
            forward_delay=4,
            hello_time=2,
            max_age=20,
            system_identifier="00:11:22:33:44:55",
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(lines, VstpVlanOptions, seed=VstpVlanOptions(vlan_id="100"))
        assert parsed == original

    def test_vstp_vlan_group(self, parser):
        """VSTP VLAN group with its member list."""
        original = VstpVlanGroupOptions(name="g1", hello_time=2, vlan=["10", "20"])
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(lines, VstpVlanGroupOptions, seed=VstpVlanGroupOptions(name="g1"))
        assert parsed == original

    def test_vstp_interface(self, parser):
        """VSTP interface flags, a choice and a zero priority."""
        original = VstpInterfaceOptions(
            name="ge-0/0/1",
            vlan="100",
            access_trunk=True,
            bpdu_timeout_action_block=True,
            cost=2000,
            edge=True,
            mode="point-to-point",
            no_root_port=True,
            priority=0,
        )
        lines = StatementBuilder().build("", original)
        parsed = parser.parse(
            lines, VstpInterfaceOptions, seed=VstpInterfaceOptions(name="ge-0/0/1", vlan="100")
        )
        assert parsed == original
