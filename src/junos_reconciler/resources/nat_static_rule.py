"""``security nat static rule-set <set> rule`` resource."""
import ipaddress
from dataclasses import dataclass
from typing import Optional

from ..engine.identity import IdentityCodec, Segment
from ..engine.resource import ResourceType, Precheck
from ..engine.schema import Options, Constraints, number, text, text_list, block

THEN_TYPES = ("inet", "prefix", "prefix-name")


def cidr_network_error(name: str, value: str) -> Optional[str]:
    """Message for a value that is not ``<network>/<length>`` with host bits clear."""
    if "/" not in value:
        return f"{name} {value!r} is not a CIDR network: missing prefix length"
    try:
        ipaddress.ip_network(value, strict=True)
    except ValueError as e:
        return f"{name} {value!r} is not a CIDR network: {e}"
    return None


def _check_then(then: "StaticNatThen") -> Optional[str]:
    if then.type == "inet":
        if then.prefix is not None or then.mapped_port is not None or then.mapped_port_to is not None:
            return "only routing_instance can be set when type = inet"
        return None
    if not then.prefix:
        return f"missing prefix with type = {then.type}"
    if then.type == "prefix":
        return cidr_network_error("prefix", then.prefix)
    return None


def _check_match_addresses(rule: "NatStaticRuleOptions") -> Optional[str]:
    addresses = [("destination_address", rule.destination_address)]
    addresses += [("source_address", address) for address in rule.source_address]
    for name, value in addresses:
        if value is not None:
            error = cidr_network_error(name, value)
            if error:
                return error
    return None


@dataclass
class StaticNatThen(Options):
    """``then static-nat <type>``; ``type`` extends the keyword."""
    type: str = "inet"
    prefix: Optional[str] = text("", quoted=True)
    mapped_port: Optional[int] = number("mapped-port", 1, 65535)
    mapped_port_to: Optional[int] = number("mapped-port to", 1, 65535, requires=("mapped_port",))
    routing_instance: Optional[str] = text("routing-instance")

    constraints = Constraints(checks=(_check_then,))


@dataclass
class NatStaticRuleOptions(Options):
    rule_set: str = ""
    name: str = ""
    destination_address: Optional[str] = text("match destination-address")
    destination_address_name: Optional[str] = text("match destination-address-name", quoted=True)
    destination_port: Optional[int] = number("match destination-port", 1, 65535)
    destination_port_to: Optional[int] = number(
        "match destination-port to", 1, 65535, requires=("destination_port",)
    )
    source_address: list[str] = text_list("match source-address")
    source_address_name: list[str] = text_list("match source-address-name", quoted=True)
    source_port: list[str] = text_list(
        "match source-port",
        pattern=r"\d+( to \d+)?",
        pattern_message="source_port need to have format `x` or `x to y`",
    )
    then: Optional[StaticNatThen] = block(
        "then static-nat", StaticNatThen, discriminator="type", choices=THEN_TYPES, required=True
    )

    constraints = Constraints(
        exactly_one_of=(("destination_address", "destination_address_name"),),
        checks=(_check_match_addresses,),
    )


def rule_path(options) -> str:
    return f"security nat static rule-set {options.rule_set} rule {options.name}"


NAT_STATIC_RULE = ResourceType(
    name="junos_security_nat_static_rule",
    options=NatStaticRuleOptions,
    path=rule_path,
    identity=IdentityCodec(Segment("rule_set"), Segment("name")),
    describe=lambda o: f'security nat static rule "{o.name}" in rule-set "{o.rule_set}"',
    prechecks=(
        Precheck(
            path=lambda o: f"security nat static rule-set {o.rule_set}",
            message=lambda o: f'security nat static rule-set "{o.rule_set}" doesn\'t exist',
        ),
    ),
    bare_prefix=True,
    description="Static NAT rule inside an existing rule-set",
)
