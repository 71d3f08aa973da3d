"""Turn per-host socket observations into directed process-to-process edges.

Three passes run over the hosts and their results are concatenated in this
order:

1. loopback: a connection reaching a listening socket of its own host
   (skipped with ``exclude_loopback``),
2. direct: a connection reaching a listening socket of another host,
3. handed-off: a connection reaching an established socket of another host
   whose local port belongs to one of that host's listening sockets (the
   socket was accepted by one process then serviced by another).

A connection can satisfy both pass 2 and pass 3; both edges are returned.
Use :func:`dedupe_edges` when a simple graph is needed.
"""
from __future__ import annotations
import logging
from typing import Iterable, Iterator, List, Sequence

from ..models import Edge, Host
from ..utils.net import is_loopback
from .heuristics import accepting_socket, handed_off, host_owns, local_family_ok, remote_family_ok

log = logging.getLogger(__name__)

def _loopback_edges(hosts: Sequence[Host]) -> Iterator[Edge]:
    for host in hosts:
        for conn in host.connections:
            for ls in host.listening_sockets:
                if (conn.protocol == ls.protocol
                        and conn.peer_socket.port == ls.port
                        and host_owns(host, conn.peer_socket)
                        and local_family_ok(conn.peer_socket, ls)):
                    yield Edge(host, host, ls, conn)

def _remote_pairs(hosts: Sequence[Host]) -> Iterator[tuple[Host, Host]]:
    for host in hosts:
        for peer in hosts:
            if host.name != peer.name:
                yield host, peer

def _direct_edges(host: Host, peer: Host) -> Iterator[Edge]:
    for ls in peer.listening_sockets:
        if ls.is_loopback:
            continue
        for conn in host.connections:
            if (conn.protocol == ls.protocol
                    and host_owns(peer, conn.peer_socket)
                    and ls.port == conn.peer_socket.port
                    and remote_family_ok(conn.peer_socket, ls)):
                yield Edge(peer, host, ls, conn)

def _handed_off_edges(host: Host, peer: Host) -> Iterator[Edge]:
    for peer_conn in peer.connections:
        for conn in host.connections:
            if (conn.protocol == peer_conn.protocol
                    and host_owns(peer, conn.peer_socket)
                    and not is_loopback(conn.local_socket.address)
                    and handed_off(conn, peer_conn)):
                ls = accepting_socket(peer, peer_conn.local_socket.port)
                if ls is None:
                    log.debug("no accepting socket on %s for %s", peer.name, peer_conn)
                    continue
                yield Edge(peer, host, ls, conn)

def build_connections_list(hosts: Sequence[Host], exclude_loopback: bool = False) -> List[Edge]:
    log.debug("Building connections list over %d hosts", len(hosts))
    edges: List[Edge] = []
    if not exclude_loopback:
        edges.extend(_loopback_edges(hosts))
    for host, peer in _remote_pairs(hosts):
        edges.extend(_direct_edges(host, peer))
    for host, peer in _remote_pairs(hosts):
        edges.extend(_handed_off_edges(host, peer))
    for e in edges:
        log.debug("found connection: %s", e)
    return edges

match = build_connections_list

def dedupe_edges(edges: Iterable[Edge]) -> List[Edge]:
    """Keep the first edge for each (listening host, connected host,
    listening socket, connection) combination."""
    return list(dict.fromkeys(edges))
