"""Managed resource types."""
from ..engine.resource import ResourceType
from .bgp_group import BGP_GROUP, BgpGroupOptions
from .bgp_neighbor import BGP_NEIGHBOR, BgpNeighborOptions
from .nat_static_rule import NAT_STATIC_RULE, NatStaticRuleOptions, StaticNatThen
from .sampling_instance import SAMPLING_INSTANCE, SamplingInstanceOptions
from .vstp import (
    VSTP_INTERFACE,
    VSTP_VLAN,
    VSTP_VLAN_GROUP,
    VstpInterfaceOptions,
    VstpVlanGroupOptions,
    VstpVlanOptions,
)

# Resource type registry
RESOURCE_TYPES: dict[str, ResourceType] = {
    rtype.name: rtype
    for rtype in (
        BGP_GROUP,
        BGP_NEIGHBOR,
        SAMPLING_INSTANCE,
        NAT_STATIC_RULE,
        VSTP_VLAN,
        VSTP_VLAN_GROUP,
        VSTP_INTERFACE,
    )
}


def get_resource_type(name: str) -> ResourceType:
    """Look up a resource type, accepting names with or without ``junos_``."""
    key = name if name.startswith("junos_") else f"junos_{name}"
    if key not in RESOURCE_TYPES:
        raise KeyError(f"Unknown resource type: {name}")
    return RESOURCE_TYPES[key]


__all__ = [
    "RESOURCE_TYPES",
    "get_resource_type",
    "BGP_GROUP",
    "BGP_NEIGHBOR",
    "NAT_STATIC_RULE",
    "SAMPLING_INSTANCE",
    "VSTP_INTERFACE",
    "VSTP_VLAN",
    "VSTP_VLAN_GROUP",
    "BgpGroupOptions",
    "BgpNeighborOptions",
    "NatStaticRuleOptions",
    "StaticNatThen",
    "SamplingInstanceOptions",
    "VstpInterfaceOptions",
    "VstpVlanGroupOptions",
    "VstpVlanOptions",
]
