"""``forwarding-options sampling instance`` resource."""
from dataclasses import dataclass
from typing import Optional

from ..engine.identity import IdentityCodec, Segment, DEFAULT_ROUTING_INSTANCE
from ..engine.resource import (
    ResourceType,
    routing_instance_precheck,
    routing_instance_prefix,
    in_routing_instance,
)
from ..engine.schema import Options, Constraints, flag, number, text, text_list, block, keyed

_FAMILY_INPUTS = ("family_inet_input", "family_inet6_input", "family_mpls_input")


@dataclass
class SamplingInput(Options):
    max_packets_per_second: Optional[int] = number("max-packets-per-second", 0, 65535)
    maximum_packet_length: Optional[int] = number("maximum-packet-length", 0, 9192)
    rate: Optional[int] = number("rate", 1, 16000000)
    run_length: Optional[int] = number("run-length", 0, 20)


@dataclass
class FlowServer(Options):
    hostname: str = ""
    port: Optional[int] = number("port", 1, 65535, required=True)
    aggregation_autonomous_system: bool = flag("aggregation autonomous-system")
    aggregation_destination_prefix: bool = flag("aggregation destination-prefix")
    aggregation_protocol_port: bool = flag("aggregation protocol-port")
    aggregation_source_destination_prefix: bool = flag("aggregation source-destination-prefix")
    aggregation_source_destination_prefix_caida_compliant: bool = flag(
        "aggregation source-destination-prefix caida-compliant",
        requires=("aggregation_source_destination_prefix",),
        implies=("aggregation_source_destination_prefix",),
    )
    aggregation_source_prefix: bool = flag("aggregation source-prefix")
    autonomous_system_type: Optional[str] = text("autonomous-system-type", choices=("origin", "peer"))
    dscp: Optional[int] = number("dscp", 0, 63)
    forwarding_class: Optional[str] = text("forwarding-class")
    local_dump: bool = flag("local-dump", conflicts_with=("no_local_dump",))
    no_local_dump: bool = flag("no-local-dump", conflicts_with=("local_dump",))
    routing_instance: Optional[str] = text("routing-instance")
    source_address: Optional[str] = text("source-address")
    version9_template: Optional[str] = text(
        "version9 template", quoted=True, conflicts_with=("version_ipfix_template",)
    )
    version_ipfix_template: Optional[str] = text(
        "version-ipfix template", quoted=True, conflicts_with=("version9_template",)
    )


def _check_version(server: "FlowServerInet") -> Optional[str]:
    if server.version is not None and server.version not in (5, 8):
        return f"version must be 5 or 8, got {server.version}"
    return None


@dataclass
class FlowServerInet(FlowServer):
    version: Optional[int] = number("version")

    constraints = Constraints(checks=(_check_version,))


@dataclass
class SamplingInterface(Options):
    name: str = ""
    engine_id: Optional[int] = number("engine-id", 0, 255)
    engine_type: Optional[int] = number("engine-type", 0, 255)
    source_address: Optional[str] = text("source-address")


@dataclass
class SamplingOutput(Options):
    """Output of the mpls family; base of the inet and inet6 outputs."""
    aggregate_export_interval: Optional[int] = number("aggregate-export-interval", 90, 1800)
    flow_active_timeout: Optional[int] = number("flow-active-timeout", 60, 1800)
    flow_inactive_timeout: Optional[int] = number("flow-inactive-timeout", 15, 1800)
    flow_server: list[FlowServer] = keyed("flow-server", FlowServer, key="hostname")
    inline_jflow_export_rate: Optional[int] = number(
        "inline-jflow flow-export-rate", 1, 3200, requires=("inline_jflow_source_address",)
    )
    inline_jflow_source_address: Optional[str] = text(
        "inline-jflow source-address", requires=("flow_server",)
    )
    interface: list[SamplingInterface] = keyed("interface", SamplingInterface, key="name")


@dataclass
class SamplingOutputInet6(SamplingOutput):
    extension_service: list[str] = text_list("extension-service", quoted=True)


@dataclass
class SamplingOutputInet(SamplingOutputInet6):
    flow_server: list[FlowServerInet] = keyed("flow-server", FlowServerInet, key="hostname")


@dataclass
class SamplingInstanceOptions(Options):
    name: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE
    disable: bool = flag("disable")
    family_inet_input: Optional[SamplingInput] = block(
        "family inet input", SamplingInput, conflicts_with=("input",)
    )
    family_inet_output: Optional[SamplingOutputInet] = block("family inet output", SamplingOutputInet)
    family_inet6_input: Optional[SamplingInput] = block(
        "family inet6 input", SamplingInput, conflicts_with=("input",)
    )
    family_inet6_output: Optional[SamplingOutputInet6] = block(
        "family inet6 output", SamplingOutputInet6
    )
    family_mpls_input: Optional[SamplingInput] = block(
        "family mpls input", SamplingInput, conflicts_with=("input",)
    )
    family_mpls_output: Optional[SamplingOutput] = block("family mpls output", SamplingOutput)
    input: Optional[SamplingInput] = block("input", SamplingInput, conflicts_with=_FAMILY_INPUTS)

    constraints = Constraints(
        at_least_one_of=(
            ("input",) + _FAMILY_INPUTS,
            ("family_inet_output", "family_inet6_output", "family_mpls_output"),
        ),
    )


def sampling_instance_path(options) -> str:
    return f'{routing_instance_prefix(options)}forwarding-options sampling instance "{options.name}"'


SAMPLING_INSTANCE = ResourceType(
    name="junos_forwardingoptions_sampling_instance",
    options=SamplingInstanceOptions,
    path=sampling_instance_path,
    identity=IdentityCodec(
        Segment("name"),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
        min_components=1,
    ),
    describe=lambda o: f'forwarding-options sampling instance "{o.name}"{in_routing_instance(o)}',
    prechecks=(routing_instance_precheck(),),
    identity_checks=(lambda o: 'name must not contain a double quote' if '"' in o.name else None,),
    description="Traffic sampling instance with per-family inputs and outputs",
)
