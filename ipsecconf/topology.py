"""Derive gateway/client roles and forwarding needs from the connection map.

The matching rules are plain substring checks on the parameter text, not CIDR
parsing. A value like "192.0.0.0/0.0.0.0" therefore counts as an IPv4 default
route, which is what existing configurations rely on.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ipsecconf.config_schema import Connection

IPV4_DEFAULT_ROUTE = "0.0.0.0/0"
IPV6_DEFAULT_ROUTE = "::/0"


@dataclass
class TopologyView:
    gateway_client_pools: List[str] = field(default_factory=list)
    ipv4_forward_needed: bool = False
    ipv6_forward_needed: bool = False


def is_ipv4_default_route(leftsubnet: Optional[str]) -> bool:
    return leftsubnet is not None and IPV4_DEFAULT_ROUTE in leftsubnet


def is_ipv6_default_route(leftsubnet: Optional[str]) -> bool:
    return leftsubnet is not None and IPV6_DEFAULT_ROUTE in leftsubnet


def is_default_route_gateway(conn: Connection) -> bool:
    """A gateway offers internet access: its local subnet is a default route."""
    leftsubnet = conn.params.get("leftsubnet")
    return is_ipv4_default_route(leftsubnet) or is_ipv6_default_route(leftsubnet)


def is_ipv6_pool(cidr: str) -> bool:
    return ":" in cidr


def classify(connections: Dict[str, Connection]) -> TopologyView:
    view = TopologyView()
    for conn in connections.values():
        leftsubnet = conn.params.get("leftsubnet")
        if is_default_route_gateway(conn):
            pool = conn.params.get("rightsourceip")
            if pool:
                view.gateway_client_pools.append(pool)
        if is_ipv4_default_route(leftsubnet):
            view.ipv4_forward_needed = True
        if is_ipv6_default_route(leftsubnet):
            view.ipv6_forward_needed = True
    return view
