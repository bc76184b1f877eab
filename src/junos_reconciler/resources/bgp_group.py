"""``protocols bgp group`` resource."""
from dataclasses import dataclass
from typing import Optional

from ..engine.identity import IdentityCodec, Segment, DEFAULT_ROUTING_INSTANCE
from ..engine.resource import (
    ResourceType,
    UpdateMode,
    routing_instance_precheck,
    routing_instance_prefix,
    in_routing_instance,
)
from ..engine.schema import Options, Constraints, text
from .bgp import BgpAttributes


@dataclass
class _GroupHead(Options):
    name: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE
    type: Optional[str] = text("type", default="external", choices=("external", "internal"))


def _external_conflicts(group: "BgpGroupOptions") -> Optional[str]:
    if group.type != "external":
        return None
    if group.advertise_external:
        return "conflict between type=external and advertise_external"
    if group.accept_remote_nexthop and group.multihop:
        return "conflict between type=external and accept_remote_nexthop + multihop"
    return None


@dataclass
class BgpGroupOptions(BgpAttributes, _GroupHead):
    """BGP group; ``type`` is emitted first, neighbors are separate resources."""

    constraints = Constraints(checks=(_external_conflicts,))


def group_path(options) -> str:
    return f"{routing_instance_prefix(options)}protocols bgp group {options.name}"


BGP_GROUP = ResourceType(
    name="junos_bgp_group",
    options=BgpGroupOptions,
    path=group_path,
    identity=IdentityCodec(
        Segment("name"),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
    ),
    describe=lambda o: f'bgp group "{o.name}"{in_routing_instance(o)}',
    prechecks=(routing_instance_precheck(),),
    update_mode=UpdateMode.OPTIONS,
    ignore=("neighbor ",),
    description="BGP group with shared peer attributes",
)
