"""BGP attributes shared by groups and neighbors."""
from dataclasses import dataclass
from typing import Optional

from ..engine.schema import Options, Constraints, flag, number, text, text_list, block, keyed

UINT32 = (0, 4294967295)
INT32 = (-2147483648, 2147483647)

NLRI_TYPES = ("any", "flow", "labeled-unicast", "unicast", "multicast")


@dataclass
class BfdLivenessDetection(Options):
    authentication_algorithm: Optional[str] = text("authentication algorithm")
    authentication_key_chain: Optional[str] = text("authentication key-chain", quoted=True)
    authentication_loose_check: bool = flag("authentication loose-check")
    detection_time_threshold: Optional[int] = number("detection-time threshold", 1, 4294967295)
    holddown_interval: Optional[int] = number("holddown-interval", 1, 255000)
    minimum_interval: Optional[int] = number("minimum-interval", 1, 255000)
    minimum_receive_interval: Optional[int] = number("minimum-receive-interval", 1, 255000)
    multiplier: Optional[int] = number("multiplier", 1, 255)
    session_mode: Optional[str] = text(
        "session-mode", choices=("automatic", "multihop", "single-hop")
    )
    transmit_interval_minimum_interval: Optional[int] = number(
        "transmit-interval minimum-interval", 1, 255000
    )
    transmit_interval_threshold: Optional[int] = number("transmit-interval threshold", 1, 4294967295)
    version: Optional[str] = text("version", choices=("0", "1", "automatic"))


@dataclass
class BgpErrorTolerance(Options):
    malformed_route_limit: Optional[int] = number(
        "malformed-route-limit", *UINT32, conflicts_with=("no_malformed_route_limit",)
    )
    malformed_update_log_interval: Optional[int] = number("malformed-update-log-interval", 10, 65535)
    no_malformed_route_limit: bool = flag(
        "no-malformed-route-limit", conflicts_with=("malformed_route_limit",)
    )


@dataclass
class Multipath(Options):
    allow_protection: bool = flag("allow-protection")
    disable: bool = flag("disable")
    multiple_as: bool = flag("multiple-as")


@dataclass
class PrefixLimit(Options):
    maximum: Optional[int] = number("maximum", 1, 4294967295, required=True)
    teardown: Optional[int] = number("teardown", 1, 100)
    teardown_idle_timeout: Optional[int] = number(
        "teardown idle-timeout", 1, 2400, conflicts_with=("teardown_idle_timeout_forever",)
    )
    teardown_idle_timeout_forever: bool = flag(
        "teardown idle-timeout forever", conflicts_with=("teardown_idle_timeout",)
    )


def _nlri_check(allowed: tuple[str, ...]):
    def check(entry: "Family") -> Optional[str]:
        if entry.nlri_type not in allowed:
            return f"nlri_type must be one of {', '.join(allowed)}, got {entry.nlri_type!r}"
        return None
    return check


@dataclass
class Family(Options):
    nlri_type: str = ""
    accepted_prefix_limit: Optional[PrefixLimit] = block("accepted-prefix-limit", PrefixLimit)
    prefix_limit: Optional[PrefixLimit] = block("prefix-limit", PrefixLimit)

    constraints = Constraints(checks=(_nlri_check(NLRI_TYPES),))


@dataclass
class FamilyEvpn(Family):
    constraints = Constraints(checks=(_nlri_check(("signaling",)),))


@dataclass
class GracefulRestart(Options):
    disable: bool = flag("disable", conflicts_with=("restart_time", "stale_routes_time"))
    restart_time: Optional[int] = number("restart-time", 1, 600, conflicts_with=("disable",))
    stale_routes_time: Optional[int] = number("stale-routes-time", 1, 600, conflicts_with=("disable",))


_METRIC_OUT_VARIANTS = (
    "metric_out_igp",
    "metric_out_igp_delay_med_update",
    "metric_out_igp_offset",
    "metric_out_minimum_igp",
    "metric_out_minimum_igp_offset",
)
_IGP = ("metric_out_igp", "metric_out_igp_delay_med_update", "metric_out_igp_offset")
_MINIMUM_IGP = ("metric_out_minimum_igp", "metric_out_minimum_igp_offset")


@dataclass
class BgpAttributes(Options):
    """Options common to ``protocols bgp group`` and ``... neighbor``."""
    accept_remote_nexthop: bool = flag("accept-remote-nexthop")
    advertise_external: bool = flag("advertise-external")
    advertise_external_conditional: bool = flag(
        "advertise-external conditional",
        requires=("advertise_external",),
        implies=("advertise_external",),
    )
    advertise_inactive: bool = flag("advertise-inactive")
    advertise_peer_as: bool = flag("advertise-peer-as", conflicts_with=("no_advertise_peer_as",))
    no_advertise_peer_as: bool = flag("no-advertise-peer-as", conflicts_with=("advertise_peer_as",))
    as_override: bool = flag("as-override")
    authentication_algorithm: Optional[str] = text(
        "authentication-algorithm", conflicts_with=("authentication_key",)
    )
    authentication_key: Optional[str] = text(
        "authentication-key",
        quoted=True,
        conflicts_with=("authentication_algorithm", "authentication_key_chain"),
    )
    authentication_key_chain: Optional[str] = text(
        "authentication-key-chain", quoted=True, conflicts_with=("authentication_key",)
    )
    bfd_liveness_detection: Optional[BfdLivenessDetection] = block(
        "bfd-liveness-detection", BfdLivenessDetection
    )
    bgp_error_tolerance: Optional[BgpErrorTolerance] = block(
        "bgp-error-tolerance", BgpErrorTolerance, presence=True
    )
    cluster: Optional[str] = text("cluster")
    damping: bool = flag("damping")
    description: Optional[str] = text("description", quoted=True)
    export: list[str] = text_list("export")
    family_evpn: list[FamilyEvpn] = keyed("family evpn", FamilyEvpn, key="nlri_type")
    family_inet: list[Family] = keyed("family inet", Family, key="nlri_type")
    family_inet6: list[Family] = keyed("family inet6", Family, key="nlri_type")
    graceful_restart: Optional[GracefulRestart] = block(
        "graceful-restart", GracefulRestart, presence=True
    )
    hold_time: Optional[int] = number("hold-time", 3, 65535)
    import_: list[str] = text_list("import")
    keep_all: bool = flag("keep all", conflicts_with=("keep_none",))
    keep_none: bool = flag("keep none", conflicts_with=("keep_all",))
    local_address: Optional[str] = text("local-address")
    local_as: Optional[str] = text("local-as", pattern=r"\d+(\.\d+)?",
                                   pattern_message="local_as must be in plain or dotted notation")
    local_as_alias: bool = flag(
        "local-as alias", conflicts_with=("local_as_no_prepend_global_as", "local_as_private")
    )
    local_as_loops: Optional[int] = number("local-as loops", 1, 10)
    local_as_no_prepend_global_as: bool = flag(
        "local-as no-prepend-global-as", conflicts_with=("local_as_alias", "local_as_private")
    )
    local_as_private: bool = flag(
        "local-as private", conflicts_with=("local_as_alias", "local_as_no_prepend_global_as")
    )
    local_interface: Optional[str] = text("local-interface")
    local_preference: Optional[int] = number("local-preference", *UINT32)
    log_updown: bool = flag("log-updown")
    metric_out: Optional[int] = number("metric-out", *UINT32, conflicts_with=_METRIC_OUT_VARIANTS)
    metric_out_igp: bool = flag(
        "metric-out igp", conflicts_with=("metric_out",) + _MINIMUM_IGP
    )
    metric_out_igp_delay_med_update: bool = flag(
        "metric-out igp delay-med-update",
        conflicts_with=("metric_out",) + _MINIMUM_IGP,
        requires=("metric_out_igp",),
        implies=("metric_out_igp",),
    )
    metric_out_igp_offset: Optional[int] = number(
        "metric-out igp", *INT32,
        conflicts_with=("metric_out",) + _MINIMUM_IGP,
        requires=("metric_out_igp",),
        implies=("metric_out_igp",),
    )
    metric_out_minimum_igp: bool = flag(
        "metric-out minimum-igp", conflicts_with=("metric_out",) + _IGP
    )
    metric_out_minimum_igp_offset: Optional[int] = number(
        "metric-out minimum-igp", *INT32,
        conflicts_with=("metric_out",) + _IGP,
        requires=("metric_out_minimum_igp",),
        implies=("metric_out_minimum_igp",),
    )
    mtu_discovery: bool = flag("mtu-discovery")
    multihop: bool = flag("multihop")
    multipath: Optional[Multipath] = block("multipath", Multipath, presence=True)
    no_client_reflect: bool = flag("no-client-reflect")
    out_delay: Optional[int] = number("out-delay", 1, 65535)
    passive: bool = flag("passive")
    peer_as: Optional[str] = text("peer-as", pattern=r"\d+(\.\d+)?",
                                  pattern_message="peer_as must be in plain or dotted notation")
    preference: Optional[int] = number("preference", *UINT32)
    remove_private: bool = flag("remove-private")
    tcp_aggressive_transmission: bool = flag("tcp-aggressive-transmission")


__all__ = [
    "BgpAttributes",
    "BfdLivenessDetection",
    "BgpErrorTolerance",
    "Family",
    "FamilyEvpn",
    "GracefulRestart",
    "Multipath",
    "PrefixLimit",
]
