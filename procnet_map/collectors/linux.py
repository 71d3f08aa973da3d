from __future__ import annotations
import logging
import re
import socket
import subprocess
from typing import Iterable, List, Optional

from ..models import Connection, Host, ListeningSocket, Process, SocketAddress, SocketType
from ..utils.net import IPAddress, parse_ip, parse_socket_addr

log = logging.getLogger(__name__)

SS_CMD = ["ss", "-tunap"]
IP_CMD = ["ip", "a"]

SS_RE = re.compile(
    r"^(?P<netid>tcp|udp)\s+(?P<state>\S+)\s+\S+\s+\S+\s+(?P<laddr>\S+)\s+(?P<raddr>\S+)(?:\s+(?P<users>.*))?$")
PROC_RE = re.compile(r"\(\"(?P<name>[^\"]+)\",pid=(?P<pid>\d+)")
INET_RE = re.compile(r"^inet6?\s+(?P<addr>[^/\s]+)")
NETSTAT_RE = re.compile(
    r"^(?P<proto>tcp6?|udp6?)\s+\d+\s+\d+\s+(?P<laddr>\S+)\s+(?P<raddr>\S+)\s+"
    r"(?P<state>LISTEN|ESTABLISHED)\s+(?P<proc>\S.*)$")

# (netid, state) -> what the line describes
LISTENING_STATES = {("tcp", "LISTEN"), ("udp", "UNCONN")}
ESTABLISHED_STATES = {("tcp", "ESTAB"), ("udp", "ESTAB")}

def parse_listening_addr(laddr: str):
    """
    ss prints dual-stack IPv6 sockets as '*:port' and IPv6-only ones as
    '[::]:port'; '[::ffff:a.b.c.d]:port' is dual-stack as well.
    Returns (ip, port, ipv6_only).
    """
    ipv6 = laddr.startswith('[') or laddr.startswith('*')
    ipv6_only = None
    if ipv6:
        ipv6_only = not (laddr.startswith('*') or laddr.startswith('[::ffff:'))
    ip, port = parse_socket_addr(laddr)
    return ip, port, ipv6_only

def parse_ss_output(text: str, hostname: str, ips: Iterable[IPAddress | str] = ()) -> Host:
    host = Host(name=hostname)
    for ip in ips:
        host.add_ip(ip)
    warned = False
    for line in text.splitlines():
        m = SS_RE.match(line.strip())
        if not m:
            continue
        kind = (m.group("netid"), m.group("state"))
        if kind not in LISTENING_STATES and kind not in ESTABLISHED_STATES:
            continue

        mproc = PROC_RE.search(m.group("users") or "")
        if not mproc:
            if not warned:
                warned = True
                log.warning("Some lines of the ss output of %s do not contain the process name. "
                            "This is normal for some lines, but it can also mean ss was not run as root.", hostname)
            continue
        process = Process.on_host(hostname, mproc.group("name"), int(mproc.group("pid")))
        protocol = SocketType.parse(m.group("netid"))

        try:
            if kind in LISTENING_STATES:
                ip, port, ipv6_only = parse_listening_addr(m.group("laddr"))
                host.add_listening_socket(ListeningSocket(
                    address=ip, port=port, protocol=protocol, owner=process,
                    host_name=hostname, ipv6_only=ipv6_only))
            else:
                local = SocketAddress(*parse_socket_addr(m.group("laddr")))
                peer = SocketAddress(*parse_socket_addr(m.group("raddr")))
                host.add_established_connection(Connection(protocol, local, peer, process))
        except ValueError as e:
            log.debug("skipping ss line %r: %s", line, e)
            continue
    return host

def parse_netstat_addr(text: str):
    """netstat prints IPv6 sockets without brackets: ':::22', '::ffff:10.0.0.1:22'."""
    host, port = text.rsplit(':', 1)
    return parse_ip(host), int(port)

def parse_netstat_output(text: str, hostname: str, ips: Iterable[IPAddress | str] = ()) -> Host:
    """Parse `netstat -tunap` output.

    netstat does not tell whether an IPv6 socket is IPv6-only; wildcard and
    plain IPv6 listeners are taken as IPv6-only, mapped ones as dual-stack.
    """
    host = Host(name=hostname)
    for ip in ips:
        host.add_ip(ip)
    warned = False
    for line in text.splitlines():
        m = NETSTAT_RE.match(line.strip())
        if not m:
            continue
        pid, _, name = m.group("proc").partition("/")
        if not pid.isdigit() or not name.strip():
            if not warned:
                warned = True
                log.warning("Some lines of the netstat output of %s do not contain the process name. "
                            "netstat was probably not run as root.", hostname)
            continue
        process = Process.on_host(hostname, name.strip(), int(pid))
        protocol = SocketType.parse(m.group("proto"))

        try:
            ip, port = parse_netstat_addr(m.group("laddr"))
            if m.group("state") == "LISTEN":
                ipv6_only = None
                if ip.version == 6:
                    ipv6_only = ip.ipv4_mapped is None
                host.add_listening_socket(ListeningSocket(
                    address=ip, port=port, protocol=protocol, owner=process,
                    host_name=hostname, ipv6_only=ipv6_only))
            else:
                peer = SocketAddress(*parse_netstat_addr(m.group("raddr")))
                host.add_established_connection(Connection(protocol, SocketAddress(ip, port), peer, process))
        except ValueError as e:
            log.debug("skipping netstat line %r: %s", line, e)
            continue
    return host

def parse_ip_output(text: str) -> List[IPAddress]:
    """Addresses from the inet/inet6 lines of `ip a`."""
    ips: List[IPAddress] = []
    for line in text.splitlines():
        m = INET_RE.match(line.strip())
        if not m:
            continue
        try:
            ips.append(parse_ip(m.group("addr")))
        except ValueError:
            continue
    return ips

def _run(cmd: List[str]) -> Optional[str]:
    try:
        return subprocess.check_output(cmd, text=True, stderr=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError) as e:
        log.warning("unable to run %s: %s", " ".join(cmd), e)
        return None

def collect(hostname: Optional[str] = None) -> Host:
    hostname = hostname or socket.gethostname()
    ss_out = _run(SS_CMD) or ""
    ip_out = _run(IP_CMD) or ""
    return parse_ss_output(ss_out, hostname, parse_ip_output(ip_out))
