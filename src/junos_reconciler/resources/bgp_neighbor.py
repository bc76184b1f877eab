"""``protocols bgp group <group> neighbor`` resource."""
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
from ..engine.schema import Options
from .bgp import BgpAttributes


@dataclass
class _NeighborHead(Options):
    ip: str = ""
    routing_instance: str = DEFAULT_ROUTING_INSTANCE
    group: str = ""


@dataclass
class BgpNeighborOptions(BgpAttributes, _NeighborHead):
    """BGP neighbor inside an existing group."""


def neighbor_path(options) -> str:
    return (
        f"{routing_instance_prefix(options)}protocols bgp group {options.group} "
        f"neighbor {options.ip}"
    )


def _group_path(options) -> Optional[str]:
    return f"{routing_instance_prefix(options)}protocols bgp group {options.group}"


BGP_NEIGHBOR = ResourceType(
    name="junos_bgp_neighbor",
    options=BgpNeighborOptions,
    path=neighbor_path,
    identity=IdentityCodec(
        Segment("ip"),
        Segment("routing_instance", default=DEFAULT_ROUTING_INSTANCE),
        Segment("group"),
    ),
    describe=lambda o: f'bgp neighbor "{o.ip}"{in_routing_instance(o)} in group "{o.group}"',
    prechecks=(
        routing_instance_precheck(),
        Precheck(
            path=_group_path,
            message=lambda o: f'bgp group "{o.group}"{in_routing_instance(o)} doesn\'t exist',
        ),
    ),
    bare_prefix=True,
    update_mode=UpdateMode.OPTIONS,
    description="BGP neighbor of a group",
)
