"""``protocols vstp`` resources: vlan, vlan-group and interface."""
import re
from dataclasses import dataclass
from typing import Optional

from ..engine.identity import IdentityCodec, Segment, DEFAULT_ROUTING_INSTANCE
from ..engine.resource import (
    ResourceType,
    Precheck,
    UpdateMode,
    routing_instance_precheck,
    routing_instance_prefix,
    in_routing_instance,
)
from ..engine.schema import Options, Constraints, flag, number, text, text_list

VLAN_ID_PATTERN = r"(409[0-4]|(40[0-8]|[1-3]\d\d|[1-9]\d|[1-9])\d|[1-9]|all)"
VLAN_ID_MESSAGE = "vlan must be a VLAN id (1-4094) or all"


def _priority_thousands(value: Optional[str]) -> Optional[int]:
    """``32k`` -> 32, ``0`` -> 0; None when unset or malformed."""
    if value is None:
        return None
    match = re.fullmatch(r"(\d\d?)k|(0)", value)
    if match is None:
        return None
    return int(match.group(1) or match.group(2))


def _check_bridge_priority(timers: "VstpTimers") -> Optional[str]:
    value = _priority_thousands(timers.bridge_priority)
    if value is None:
        return None
    if value % 4:
        return "bridge_priority must be a multiple of 4k"
    if value > 60:
        return "bridge_priority must be between 0 and 60k"
    return None


def _check_backup_bridge_priority(timers: "VstpTimers") -> Optional[str]:
    backup = _priority_thousands(timers.backup_bridge_priority)
    if backup is None:
        return None
    if backup % 4:
        return "backup_bridge_priority must be a multiple of 4k"
    if not 4 <= backup <= 60:
        return "backup_bridge_priority must be between 4k and 60k"
    bridge = _priority_thousands(timers.bridge_priority)
    if bridge is not None and backup <= bridge:
        return "backup_bridge_priority must be worse (higher value) than bridge_priority"
    return None


@dataclass
class VstpTimers(Options):
    """Spanning tree parameters of a VLAN or VLAN group."""
    backup_bridge_priority: Optional[str] = text(
        "backup-bridge-priority", pattern=r"\d\d?k",
        pattern_message="backup_bridge_priority must be a number with increments of 4k - 4k,8k,..60k",
    )
    bridge_priority: Optional[str] = text(
        "bridge-priority", pattern=r"(0|\d\d?k)",
        pattern_message="bridge_priority must be a number with increments of 4k - 0,4k,8k,..60k",
    )
    forward_delay: Optional[int] = number("forward-delay", 4, 30)
    hello_time: Optional[int] = number("hello-time", 1, 10)
    max_age: Optional[int] = number("max-age", 6, 40)
    system_identifier: Optional[str] = text("system-identifier")

    constraints = Constraints(checks=(_check_bridge_priority, _check_backup_bridge_priority))


@dataclass
class _VlanHead(Options):
    vlan_id: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE


@dataclass
class VstpVlanOptions(VstpTimers, _VlanHead):
    pass


@dataclass
class _VlanGroupHead(Options):
    name: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE


@dataclass
class VstpVlanGroupOptions(VstpTimers, _VlanGroupHead):
    vlan: list[str] = text_list(
        "vlan", required=True, pattern=VLAN_ID_PATTERN, pattern_message=VLAN_ID_MESSAGE
    )


def _check_port_priority(options: "VstpInterfaceOptions") -> Optional[str]:
    if options.priority is not None and options.priority % 16:
        return "priority must be a multiple of 16"
    return None


@dataclass
class VstpInterfaceOptions(Options):
    name: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE
    vlan: str = ""
    vlan_group: str = ""
    access_trunk: bool = flag("access-trunk")
    bpdu_timeout_action_alarm: bool = flag("bpdu-timeout-action alarm")
    bpdu_timeout_action_block: bool = flag("bpdu-timeout-action block")
    cost: Optional[int] = number("cost", 1, 200000000)
    edge: bool = flag("edge")
    mode: Optional[str] = text("mode", choices=("point-to-point", "shared"))
    no_root_port: bool = flag("no-root-port")
    priority: Optional[int] = number("priority", 0, 240)

    constraints = Constraints(checks=(_check_port_priority,))


def vlan_path(options) -> str:
    return f"{routing_instance_prefix(options)}protocols vstp vlan {options.vlan_id}"


def vlan_group_path(options) -> str:
    return f"{routing_instance_prefix(options)}protocols vstp vlan-group group {options.name}"


def interface_path(options) -> str:
    scope = ""
    if options.vlan:
        scope = f"vlan {options.vlan} "
    elif options.vlan_group:
        scope = f"vlan-group group {options.vlan_group} "
    return f"{routing_instance_prefix(options)}protocols vstp {scope}interface {options.name}"


def _check_vlan_id(options) -> Optional[str]:
    if options.vlan_id and not re.fullmatch(VLAN_ID_PATTERN, options.vlan_id):
        return VLAN_ID_MESSAGE
    return None


def _check_interface(options) -> Optional[str]:
    if "." in options.name:
        return f'interface name "{options.name}" must not contain a dot'
    if options.vlan and options.vlan_group:
        return "vlan and vlan_group cannot be configured together"
    return None


def _parent_vlan_path(options) -> Optional[str]:
    if not options.vlan:
        return None
    return f"{routing_instance_prefix(options)}protocols vstp vlan {options.vlan}"


def _parent_vlan_group_path(options) -> Optional[str]:
    if not options.vlan_group:
        return None
    return f"{routing_instance_prefix(options)}protocols vstp vlan-group group {options.vlan_group}"


VSTP_VLAN = ResourceType(
    name="junos_vstp_vlan",
    options=VstpVlanOptions,
    path=vlan_path,
    identity=IdentityCodec(
        Segment("vlan_id"),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
        min_components=1,
    ),
    describe=lambda o: f'vstp vlan "{o.vlan_id}"{in_routing_instance(o)}',
    prechecks=(routing_instance_precheck(),),
    bare_prefix=True,
    update_mode=UpdateMode.OPTIONS,
    ignore=("interface ",),
    identity_checks=(_check_vlan_id,),
    description="VSTP VLAN",
)

VSTP_VLAN_GROUP = ResourceType(
    name="junos_vstp_vlan_group",
    options=VstpVlanGroupOptions,
    path=vlan_group_path,
    identity=IdentityCodec(
        Segment("name"),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
        min_components=1,
    ),
    describe=lambda o: f'vstp vlan-group group "{o.name}"{in_routing_instance(o)}',
    prechecks=(routing_instance_precheck(),),
    update_mode=UpdateMode.OPTIONS,
    ignore=("interface ",),
    description="VSTP VLAN group",
)

VSTP_INTERFACE = ResourceType(
    name="junos_vstp_interface",
    options=VstpInterfaceOptions,
    path=interface_path,
    identity=IdentityCodec(
        Segment("name"),
        Segment(variants=(("v_", "vlan"), ("vg_", "vlan_group"))),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
        min_components=1,
    ),
    describe=lambda o: f'vstp interface "{o.name}"{_interface_scope(o)}{in_routing_instance(o)}',
    prechecks=(
        routing_instance_precheck(),
        Precheck(
            path=_parent_vlan_path,
            message=lambda o: f'vstp vlan "{o.vlan}"{in_routing_instance(o)} doesn\'t exist',
        ),
        Precheck(
            path=_parent_vlan_group_path,
            message=lambda o: (
                f'vstp vlan-group group "{o.vlan_group}"{in_routing_instance(o)} doesn\'t exist'
            ),
        ),
    ),
    bare_prefix=True,
    identity_checks=(_check_interface,),
    description="VSTP interface, optionally scoped to a VLAN or VLAN group",
)


def _interface_scope(options) -> str:
    if options.vlan:
        return f' in vlan "{options.vlan}"'
    if options.vlan_group:
        return f' in vlan-group "{options.vlan_group}"'
    return ""
