"""Hosts described by hand in two CSV files.

The network file has the columns ``protocol, local_socket, foreign_socket,
state, pid, process_name`` where state is ``Established`` or ``Listening``.
IPv6 sockets are written ``[addr]:port``. The IP file has one address per
row after a header row.
"""
from __future__ import annotations
import csv, logging
from pathlib import Path
from typing import List

from ..models import Connection, Host, ListeningSocket, Process, SocketAddress, SocketType
from ..utils.net import IPAddress, parse_ip, parse_socket_addr

log = logging.getLogger(__name__)

def read_ip_file(path: Path) -> List[IPAddress]:
    ips: List[IPAddress] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)
        for row in reader:
            if not row:
                continue
            if not row[0].strip():
                raise ValueError(f"error in IP CSV file format: {path}")
            try:
                ips.append(parse_ip(row[0]))
            except ValueError as e:
                raise ValueError(f"unable to parse IP CSV file {path}: {e}") from e
    return ips

def _add_record(host: Host, row: dict) -> None:
    protocol = SocketType.parse(row["protocol"])
    local = SocketAddress(*parse_socket_addr(row["local_socket"]))
    process = Process.on_host(host.name, row["process_name"].strip(), int(row["pid"]))
    state = row["state"].strip().lower()
    if state == "established":
        foreign = (row.get("foreign_socket") or "").strip()
        if not foreign:
            raise ValueError("missing foreign socket for connection")
        host.add_established_connection(
            Connection(protocol, local, SocketAddress(*parse_socket_addr(foreign)), process))
    elif state == "listening":
        ipv6_only = None
        if local.is_ipv6:
            ipv6_only = not row["local_socket"].strip().startswith(("*", "[::ffff:"))
        host.add_listening_socket(ListeningSocket(
            address=local.address, port=local.port, protocol=protocol,
            owner=process, host_name=host.name, ipv6_only=ipv6_only))
    else:
        raise ValueError(f"unknown state {row['state']!r}")

def host_from_csv_files(hostname: str, network_csv: Path, ip_csv: Path) -> Host:
    log.debug("Parsing CSV files for host %s", hostname)
    host = Host(name=hostname, ips=read_ip_file(ip_csv))
    with open(network_csv, newline="", encoding="utf-8") as f:
        for lineno, row in enumerate(csv.DictReader(f), start=2):
            row = {(k or "").strip().lower(): (v or "") for k, v in row.items()}
            try:
                _add_record(host, row)
            except (KeyError, ValueError) as e:
                log.warning("unable to parse CSV network record %s:%d: %s", network_csv, lineno, e)
                continue
    return host
