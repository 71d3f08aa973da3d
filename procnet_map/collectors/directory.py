"""Find hosts in a directory of captured command outputs.

Files are named after the host they were taken on:

- ``<host>.ss`` or ``<host>.linux_netstat``  output of ``ss -tunap`` / ``netstat -tunap``
- ``<host>.linux_ip``    output of ``ip a``
- ``<host>.windows_netstat``, ``<host>.windows_tasklist``, ``<host>.windows_ip``
- ``<host>.nmap_<ip>``   output of ``nmap <ip>`` for hosts only reachable from outside
- ``<host>_network.csv`` and ``<host>_ip.csv``  hand written CSV files
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..models import Host
from . import linux, windows
from .csv_import import host_from_csv_files
from .nmap import NMAP_PREFIX, host_from_nmap_files

log = logging.getLogger(__name__)

SUFFIX_TYPES = (".ss", ".linux_netstat", ".linux_ip", ".windows_netstat", ".windows_tasklist", ".windows_ip")

@dataclass
class ScannedHost:
    name: str
    files: Dict[str, Path] = field(default_factory=dict)

def classify(path: Path) -> Optional[tuple[str, str]]:
    """(hostname, file type) for a capture file, None when unknown.

    nmap captures keep the scanned address in their type (``nmap_10.0.0.5``)
    so that one host can have a scan per address.
    """
    name = path.name
    if name.endswith("_network.csv"):
        return name[:-len("_network.csv")], "csv_network"
    if name.endswith("_ip.csv"):
        return name[:-len("_ip.csv")], "csv_ip"
    hostname, _, rest = name.partition(".")
    if hostname and rest.startswith(NMAP_PREFIX):
        return hostname, rest
    if path.suffix in SUFFIX_TYPES:
        return path.stem, path.suffix[1:]
    return None

def scan_dir(path: Path) -> List[ScannedHost]:
    found: Dict[str, ScannedHost] = {}
    for entry in sorted(Path(path).iterdir()):
        if entry.is_dir():
            continue
        kind = classify(entry)
        if not kind:
            log.debug("skipping file %s", entry.name)
            continue
        hostname, filetype = kind
        log.debug("found %s file for host %s", filetype, hostname)
        found.setdefault(hostname, ScannedHost(hostname)).files[filetype] = entry
    return [found[k] for k in sorted(found)]

def _linux_host(scanned: ScannedHost) -> Host:
    files = scanned.files
    ips = []
    if "linux_ip" in files:
        ips = linux.parse_ip_output(files["linux_ip"].read_text(encoding="utf-8"))
    else:
        log.warning("no IP file for host %s, only loopback connections will be found", scanned.name)
    if "ss" in files:
        return linux.parse_ss_output(files["ss"].read_text(encoding="utf-8"), scanned.name, ips)
    return linux.parse_netstat_output(files["linux_netstat"].read_text(encoding="utf-8"), scanned.name, ips)

def _windows_host(scanned: ScannedHost) -> Host:
    files = scanned.files
    if "windows_tasklist" not in files:
        raise ValueError(f"host {scanned.name} is missing the Windows tasklist file")
    if "linux_ip" in files:
        raise ValueError(f"host {scanned.name} mixes a Linux ip file with a Windows netstat file")
    if "windows_ip" not in files:
        log.warning("no IP file for host %s, only loopback connections will be found", scanned.name)
    return windows.host_from_files(scanned.name, files["windows_netstat"], files["windows_tasklist"],
                                   files.get("windows_ip"))

def build_host(scanned: ScannedHost) -> Host:
    files = scanned.files
    if "csv_network" in files or "csv_ip" in files:
        if not ("csv_network" in files and "csv_ip" in files):
            raise ValueError(f"host {scanned.name} needs both a _network.csv and an _ip.csv file")
        return host_from_csv_files(scanned.name, files["csv_network"], files["csv_ip"])
    if "ss" in files or "linux_netstat" in files:
        return _linux_host(scanned)
    if "windows_netstat" in files:
        return _windows_host(scanned)
    scans = [p for t, p in sorted(files.items()) if t.startswith(NMAP_PREFIX)]
    if scans:
        return host_from_nmap_files(scanned.name, scans)
    raise ValueError(f"no socket table found for host {scanned.name}")

def build_hosts(scanned: List[ScannedHost]) -> List[Host]:
    return [build_host(s) for s in scanned]
