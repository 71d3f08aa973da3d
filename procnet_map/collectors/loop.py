from __future__ import annotations
import logging, platform, threading
from typing import Optional

from ..config import CFG
from ..models import Host, SocketType
from ..topology.aggregate import Update
from . import generic, linux

log = logging.getLogger(__name__)

def collect_local(cfg: CFG, hostname: Optional[str] = None) -> Host:
    if platform.system() == 'Linux':
        host = linux.collect(hostname)
    else:
        host = generic.collect(hostname, udp=cfg.udp_enabled)
    if not cfg.udp_enabled:
        host = Host(name=host.name, ips=host.ips,
                    listening_sockets=[s for s in host.listening_sockets if s.protocol is not SocketType.UDP],
                    connections=[c for c in host.connections if c.protocol is not SocketType.UDP])
    if cfg.exclude_processes:
        host = host.without_processes(cfg.exclude_processes)
    return host

def collector_loop(cfg: CFG, snap, interval: float, stop: Optional[threading.Event] = None,
                   hostname: Optional[str] = None):
    stop = stop or threading.Event()
    while not stop.is_set():
        host = collect_local(cfg, hostname)
        log.debug("collected %s: %d listening sockets, %d connections",
                  host.name, len(host.listening_sockets), len(host.connections))
        with snap.lock:
            snap.add_update(Update(host))
        stop.wait(interval)
