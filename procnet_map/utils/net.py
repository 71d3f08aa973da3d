from __future__ import annotations
import ipaddress, re
from typing import Tuple, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

SCOPE_RE = re.compile(r"%[\w.-]+")

def parse_ip(text: str) -> IPAddress:
    """Parse an address, dropping any '%iface' scope suffix."""
    return ipaddress.ip_address(SCOPE_RE.sub("", text.strip().strip("[]")))

def parse_socket_addr(text: str) -> Tuple[IPAddress, int]:
    """
    Supports:
      - '1.2.3.4:5678'
      - '[::1]:443', '[::ffff:10.0.0.1]:22'
      - '127.0.0.53%lo:53', '[fe80::1%eth0]:546'
      - '*:22' (IPv6 wildcard, as printed by ss for dual-stack sockets)
    Raises ValueError on anything else.
    """
    text = SCOPE_RE.sub("", text.strip())
    if ':' not in text:
        raise ValueError(f"missing port in socket address: {text!r}")
    host, port = text.rsplit(':', 1)
    if host in ('*', '[*]'):
        host = '::'
    if host.startswith('[') != host.endswith(']'):
        raise ValueError(f"unbalanced brackets in socket address: {text!r}")
    return ipaddress.ip_address(host.strip('[]')), int(port)

def ipv4_mapped(ip: ipaddress.IPv4Address) -> ipaddress.IPv6Address:
    return ipaddress.IPv6Address(f"::ffff:{ip}")

def is_loopback(ip: IPAddress) -> bool:
    # ::ffff:127.0.0.1 is as unreachable from outside as 127.0.0.1
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped.is_loopback
    return ip.is_loopback

def format_socket(ip: IPAddress, port: int) -> str:
    if ip.version == 6:
        return f"[{ip}]:{port}"
    return f"{ip}:{port}"
