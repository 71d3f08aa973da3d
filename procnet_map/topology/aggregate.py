"""Merge timed observations of one host into a single Host."""
from __future__ import annotations
import logging, time
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, TypeVar

from ..models import Host

log = logging.getLogger(__name__)

T = TypeVar("T")

class EmptyInputError(ValueError):
    """Raised when there is nothing to aggregate."""

@dataclass
class Update:
    host: Host
    taken_at: float = field(default_factory=time.time)

def _sorted_unique(items: Iterable[T]) -> List[T]:
    out: List[T] = []
    for item in sorted(items, key=lambda x: x.sort_key()):
        if out and out[-1] == item:
            continue
        out.append(item)
    return out

def aggregate_updates(updates: Sequence[Update]) -> Host:
    """Union of everything observed in `updates`, which must all describe the
    same host. Only exact duplicates are merged: a process seen with another
    pid in a later sample stays a distinct process.
    """
    if not updates:
        raise EmptyInputError("no updates were made")
    first = updates[0].host
    merged = Host(name=first.name, ips=list(first.ips),
                  listening_sockets=list(first.listening_sockets),
                  connections=list(first.connections))
    for u in updates[1:]:
        if u.host.name != merged.name:
            log.warning("aggregating update of %s into %s", u.host.name, merged.name)
        for ip in u.host.ips:
            merged.add_ip(ip)
        merged.connections.extend(u.host.connections)
        merged.listening_sockets.extend(u.host.listening_sockets)
    merged.connections = _sorted_unique(merged.connections)
    merged.listening_sockets = _sorted_unique(merged.listening_sockets)
    log.debug("aggregated %d updates of %s: %d listening sockets, %d connections",
              len(updates), merged.name, len(merged.listening_sockets), len(merged.connections))
    return merged
