from __future__ import annotations
import logging, socket
from typing import Dict, Optional

import psutil

from ..models import Connection, Host, ListeningSocket, Process, SocketAddress, SocketType
from ..utils.net import parse_ip

log = logging.getLogger(__name__)

def proc_name(pid: int, cache: Dict[int, str]) -> str:
    if pid not in cache:
        try:
            cache[pid] = psutil.Process(pid).name() or "?"
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            cache[pid] = "?"
    return cache[pid]

def _ipv6_only(ip) -> Optional[bool]:
    if ip.version == 4:
        return None
    if ip.ipv4_mapped is not None:
        return False
    # Windows sets IPV6_V6ONLY on new sockets; Linux, macOS and the BSDs leave the wildcard dual-stack
    if psutil.WINDOWS:
        return True
    return not ip.is_unspecified

def collect(hostname: Optional[str] = None, udp: bool = True) -> Host:
    """The local host, as seen through psutil (any platform psutil supports)."""
    hostname = hostname or socket.gethostname()
    host = Host(name=hostname)
    for addrs in psutil.net_if_addrs().values():
        for a in addrs:
            if a.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                host.add_ip(parse_ip(a.address))
            except ValueError:
                continue

    names: Dict[int, str] = {}
    try:
        conns = psutil.net_connections(kind='inet' if udp else 'tcp')
    except psutil.AccessDenied:
        log.warning("listing sockets of %s requires more privileges", hostname)
        return host
    for c in conns:
        if not c.pid or not c.laddr:
            continue
        protocol = SocketType.TCP if c.type == socket.SOCK_STREAM else SocketType.UDP
        process = Process.on_host(hostname, proc_name(c.pid, names), c.pid)
        try:
            lip = parse_ip(c.laddr.ip)
        except ValueError:
            continue
        listening = (c.status == psutil.CONN_LISTEN
                     or (protocol is SocketType.UDP and not c.raddr))
        if listening:
            host.add_listening_socket(ListeningSocket(
                address=lip, port=c.laddr.port, protocol=protocol, owner=process,
                host_name=hostname, ipv6_only=_ipv6_only(lip)))
        elif c.raddr and (c.status == psutil.CONN_ESTABLISHED or protocol is SocketType.UDP):
            host.add_established_connection(Connection(
                protocol, SocketAddress(lip, c.laddr.port),
                SocketAddress(parse_ip(c.raddr.ip), c.raddr.port), process))
    return host
