"""Hosts seen only from the outside, through a port scan.

A capture ``<host>.nmap_<ip>`` holds the output of ``nmap -4|-6 <ip>``. Each
open port becomes a listening socket owned by a pseudo process named after
the service nmap guessed (``ssh?``) with pid 0.
"""
from __future__ import annotations
import logging, re
from pathlib import Path
from typing import Iterable

from ..models import Host, ListeningSocket, Process, SocketType
from ..utils.net import IPAddress, parse_ip

log = logging.getLogger(__name__)

NMAP_PREFIX = "nmap_"
PORT_RE = re.compile(r"^(?P<port>\d+)/(?P<proto>tcp|udp)\s+(?P<state>\S+)\s+(?P<service>\S+)")

def scanned_ip(path: Path) -> IPAddress:
    """The address a capture was taken against, from its file name."""
    _, _, suffix = path.name.partition(".")
    if not suffix.startswith(NMAP_PREFIX):
        raise ValueError(f"not an nmap capture: {path.name}")
    return parse_ip(suffix[len(NMAP_PREFIX):])

def parse_nmap_output(text: str, host: Host, ip: IPAddress) -> None:
    host.add_ip(ip)
    for line in text.splitlines():
        m = PORT_RE.match(line.strip())
        if not m:
            continue
        # closed and filtered ports have no listener behind them
        if not m.group("state").startswith("open"):
            continue
        log.debug("nmap line: %s", line.strip())
        process = Process.on_host(host.name, f"{m.group('service')}?", 0)
        host.add_listening_socket(ListeningSocket(
            address=ip, port=int(m.group("port")), protocol=SocketType.parse(m.group("proto")),
            owner=process, host_name=host.name, ipv6_only=None if ip.version == 4 else True))

def host_from_nmap_files(hostname: str, paths: Iterable[Path]) -> Host:
    """One host from one or more scans (typically one per address family)."""
    log.debug("Parsing nmap output files for host %s", hostname)
    host = Host(name=hostname)
    for path in paths:
        parse_nmap_output(Path(path).read_text(encoding="utf-8"), host, scanned_ip(Path(path)))
    return host
