from __future__ import annotations
from typing import Optional

from ..models import Connection, Host, ListeningSocket, SocketAddress

def host_owns(host: Host, peer: SocketAddress) -> bool:
    return peer.address in host.ips

def same_family(a: SocketAddress, b: SocketAddress) -> bool:
    return a.address.version == b.address.version

def local_family_ok(peer: SocketAddress, listener: ListeningSocket) -> bool:
    """Family rule for a peer on the listener's own host: an IPv4 peer needs
    an IPv4 listener or a dual-stack one whose flag is known to be off."""
    if peer.is_ipv4 and listener.ipv6_only is False:
        return True
    return peer.address.version == listener.address.version

def remote_family_ok(peer: SocketAddress, listener: ListeningSocket) -> bool:
    """Family rule across hosts: only an explicitly IPv6-only listener
    refuses IPv4 peers."""
    if peer.is_ipv4 and listener.ipv6_only is not True:
        return True
    return peer.address.version == listener.address.version

def accepting_socket(host: Host, port: int) -> Optional[ListeningSocket]:
    """The listening socket a handed-off connection on `port` came from.
    The last socket bound to that port wins."""
    found = None
    for ls in host.listening_sockets:
        if ls.port == port:
            found = ls
    return found

def handed_off(conn: Connection, peer_conn: Connection) -> bool:
    """`conn` talks to the local side of `peer_conn` on the other host."""
    return (conn.peer_socket.port == peer_conn.local_socket.port
            and conn.peer_socket.address == peer_conn.local_socket.address
            and same_family(peer_conn.peer_socket, conn.peer_socket))
