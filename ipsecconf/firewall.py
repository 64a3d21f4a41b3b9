from typing import Optional

from ipsecconf.topology import TopologyView, is_ipv6_pool

MSS_MARKER = "--set-mss 1024"

BANNER = ("# The file is automatically generated by ipsecconf.\n"
          "# You may run the file using bourne-shell-compatible interpreter.\n")

# Each hook is defined and invoked right away; `true` keeps empty bodies valid.
FUNC_TEMPLATE = "{name}() {{\n{body}true\n}}\n{name}\n"
DPORT_ACCEPT_TEMPLATE = "{tool} -A INPUT -p udp --dport {port} -j ACCEPT\n"
PROTO_ACCEPT_TEMPLATE = "{tool} -A INPUT -p {proto} -j ACCEPT\n"
MSS_CLAMP_TEMPLATE = "{tool} -A FORWARD -p tcp --tcp-flags SYN,RST SYN -j TCPMSS " + MSS_MARKER + "\n"
FORWARD_TEMPLATE = "{tool} -A FORWARD -s {cidr} -j ACCEPT\n"
MASQ_TEMPLATE = "{tool} -t nat -A POSTROUTING -s {cidr} -j MASQUERADE\n"

IKE_PORTS = [500, 4500]
ESP_PROTOCOL = 50
TOOLS = ["iptables", "ip6tables"]


def _func(name: str, body: str = "") -> str:
    return FUNC_TEMPLATE.format(name=name, body=body)


def _open_ipsec_ports() -> str:
    body = "".join(DPORT_ACCEPT_TEMPLATE.format(tool=tool, port=port)
                   for tool in TOOLS for port in IKE_PORTS)
    body += "".join(PROTO_ACCEPT_TEMPLATE.format(tool=tool, proto=ESP_PROTOCOL) for tool in TOOLS)
    return body


def _internet_access(view: TopologyView, tcp_mss_clamp_enabled: bool) -> str:
    body = ""
    # The MSS clamp must come before FORWARD and MASQUERADE
    if tcp_mss_clamp_enabled:
        body += "".join(MSS_CLAMP_TEMPLATE.format(tool=tool) for tool in TOOLS)
    for cidr in view.gateway_client_pools:
        tool = "ip6tables" if is_ipv6_pool(cidr) else "iptables"
        body += FORWARD_TEMPLATE.format(tool=tool, cidr=cidr)
        body += MASQ_TEMPLATE.format(tool=tool, cidr=cidr)
    return body


def generate_firewall_script(view: TopologyView, has_any_connections: bool,
                             tcp_mss_clamp_enabled: bool) -> str:
    """Renders the firewall custom-rules hook script for the VPN topology."""
    script = BANNER
    script += _func("fw_custom_after_chain_creation", _open_ipsec_ports() if has_any_connections else "")
    script += _func("fw_custom_before_port_handling")
    script += _func("fw_custom_before_masq", _internet_access(view, tcp_mss_clamp_enabled))
    script += _func("fw_custom_before_denyall")
    script += _func("fw_custom_after_finished")
    return script


def mss_clamp_enabled(script_text: Optional[str]) -> bool:
    """Recovers the TCP MSS flag from a previously generated script."""
    return script_text is not None and MSS_MARKER in script_text
