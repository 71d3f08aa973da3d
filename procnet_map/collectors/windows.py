"""Windows hosts from captured command outputs:

- ``<host>.windows_netstat``   ``netstat -p tcp -ano``
- ``<host>.windows_tasklist``  ``tasklist /FO CSV``
- ``<host>.windows_ip``        ``Get-NetIPAddress``

PowerShell redirections write UTF-16, so files are decoded by BOM.
"""
from __future__ import annotations
import codecs, csv, io, logging, re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models import Connection, Host, ListeningSocket, Process, SocketAddress, SocketType
from ..utils.net import IPAddress, parse_ip, parse_socket_addr

log = logging.getLogger(__name__)

NETSTAT_RE = re.compile(r"^TCP\s+(?P<laddr>\S+)\s+(?P<raddr>\S+)\s+(?P<state>[A-Z_]+)\s+(?P<pid>\d+)$")
IPADDRESS_RE = re.compile(r"^IPAddress\s*:\s*(?P<addr>\S+)")

def read_capture(path: Path) -> str:
    data = Path(path).read_bytes()
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16")
    # UTF-16 without BOM still decodes as UTF-8, with a NUL after each ASCII char
    if b"\x00" in data:
        return data.decode("utf-16-le")
    return data.decode("utf-8-sig")

def parse_tasklist_output(text: str) -> Dict[int, str]:
    """pid -> image name; the first row seen for a pid wins."""
    names: Dict[int, str] = {}
    for row in csv.reader(io.StringIO(text)):
        if len(row) < 2 or not row[1].strip().isdigit():
            continue
        names.setdefault(int(row[1]), row[0].strip())
    return names

def parse_ip_output(text: str) -> List[IPAddress]:
    ips: List[IPAddress] = []
    for line in text.splitlines():
        m = IPADDRESS_RE.match(line.strip())
        if not m:
            continue
        try:
            ips.append(parse_ip(m.group("addr")))
        except ValueError:
            continue
    return ips

def parse_netstat_output(text: str, hostname: str, names: Dict[int, str],
                         ips: Iterable[IPAddress | str] = ()) -> Host:
    """TCP rows of `netstat -ano`; pids are resolved through the tasklist.

    Windows creates IPv6 sockets with IPV6_V6ONLY set, so IPv6 listeners are
    IPv6-only.
    """
    host = Host(name=hostname)
    for ip in ips:
        host.add_ip(ip)
    for line in text.splitlines():
        m = NETSTAT_RE.match(line.strip())
        if not m or m.group("state") not in ("LISTENING", "ESTABLISHED"):
            continue
        pid = int(m.group("pid"))
        if pid not in names:
            log.warning("unable to find process name for PID %d on %s, skipping", pid, hostname)
            continue
        process = Process.on_host(hostname, names[pid], pid)
        try:
            local = SocketAddress(*parse_socket_addr(m.group("laddr")))
            if m.group("state") == "LISTENING":
                host.add_listening_socket(ListeningSocket(
                    address=local.address, port=local.port, protocol=SocketType.TCP, owner=process,
                    host_name=hostname, ipv6_only=True if local.is_ipv6 else None))
            else:
                peer = SocketAddress(*parse_socket_addr(m.group("raddr")))
                host.add_established_connection(Connection(SocketType.TCP, local, peer, process))
        except ValueError as e:
            log.debug("skipping netstat line %r: %s", line, e)
            continue
    return host

def host_from_files(hostname: str, netstat: Path, tasklist: Path, ip: Optional[Path] = None) -> Host:
    log.debug("Parsing netstat, tasklist and Get-NetIPAddress outputs for host %s", hostname)
    ips = parse_ip_output(read_capture(ip)) if ip else []
    names = parse_tasklist_output(read_capture(tasklist))
    return parse_netstat_output(read_capture(netstat), hostname, names, ips)
