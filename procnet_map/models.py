from __future__ import annotations
import enum, hashlib, logging
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional, Tuple

from .utils.net import IPAddress, format_socket, ipv4_mapped, is_loopback, parse_ip

log = logging.getLogger(__name__)

NODE_ID_UNSAFE = str.maketrans({'.': '_', '?': '_', '-': '_'})

@dataclass(frozen=True)
class Process:
    name: str
    pid: int
    node_id: str

    @classmethod
    def on_host(cls, host_name: str, name: str, pid: int) -> "Process":
        return cls(name=name, pid=pid, node_id=f"{host_name}_{name}".translate(NODE_ID_UNSAFE))

class SocketType(enum.Enum):
    TCP = "tcp"
    UDP = "udp"
    UNIX = "unix"

    @classmethod
    def parse(cls, text: str) -> "SocketType":
        t = text.strip().lower()
        if t.endswith('6'):
            t = t[:-1]
        return cls(t)

class SocketAddress(NamedTuple):
    address: IPAddress
    port: int

    def __str__(self) -> str:
        return format_socket(self.address, self.port)

    @property
    def is_ipv4(self) -> bool:
        return self.address.version == 4

    @property
    def is_ipv6(self) -> bool:
        return self.address.version == 6

def _address_key(ip: IPAddress, port: int) -> Tuple[int, int, int]:
    # IPv4Address and IPv6Address do not compare with each other
    return (ip.version, int(ip), port)

@dataclass(frozen=True)
class ListeningSocket:
    """A bound socket accepting peers, owned by one process.

    ipv6_only is None for IPv4 sockets, True for IPv6-only sockets and False
    for dual-stack sockets that also accept IPv4-mapped peers.
    """
    address: IPAddress
    port: int
    protocol: SocketType
    owner: Process
    host_name: str
    ipv6_only: Optional[bool] = None
    node_name: str = field(init=False, compare=False)
    node_id: str = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        family = "4" if self.address.version == 4 else "6"
        if self.ipv6_only is False:
            family = "4/6"
        object.__setattr__(self, 'node_name', f"{self.owner.name}\n{self.protocol.value}{family}:{self.port}")
        digest = hashlib.sha1(f"{self.host_name}_{self.owner.name}_{self.port}".encode("utf-8")).hexdigest()
        # DOT ids may not start with a digit
        object.__setattr__(self, 'node_id', "a" + digest)

    @property
    def socket(self) -> SocketAddress:
        return SocketAddress(self.address, self.port)

    @property
    def is_loopback(self) -> bool:
        return is_loopback(self.address)

    def sort_key(self):
        return (self.protocol.value, _address_key(self.address, self.port),
                self.owner.name, self.owner.pid, self.owner.node_id, self.host_name,
                {None: 0, False: 1, True: 2}[self.ipv6_only])

@dataclass(frozen=True)
class Connection:
    """One endpoint of an established conversation, as seen on its host."""
    protocol: SocketType
    local_socket: SocketAddress
    peer_socket: SocketAddress
    owner: Process

    def sort_key(self):
        return (self.protocol.value,
                _address_key(*self.local_socket), _address_key(*self.peer_socket),
                self.owner.name, self.owner.pid, self.owner.node_id)

    def __str__(self) -> str:
        return f"{self.protocol.value} {self.local_socket} -> {self.peer_socket} ({self.owner.name}/{self.owner.pid})"

LOOPBACK_IPS = (parse_ip("127.0.0.1"), parse_ip("::1"))

@dataclass
class Host:
    name: str
    ips: List[IPAddress] = field(default_factory=list)
    listening_sockets: List[ListeningSocket] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)

    def __post_init__(self):
        given, self.ips = list(self.ips), list(LOOPBACK_IPS)
        for ip in given:
            self.add_ip(ip)

    @property
    def cluster_id(self) -> str:
        return f"cluster_{self.name}".replace('-', '_')

    def add_ip(self, ip: IPAddress | str) -> None:
        if isinstance(ip, str):
            ip = parse_ip(ip)
        log.debug("add IP %s to %s", ip, self.name)
        self._push_ip(ip)
        # peers on dual-stack sockets show up as ::ffff:a.b.c.d
        if ip.version == 4:
            self._push_ip(ipv4_mapped(ip))

    def _push_ip(self, ip: IPAddress) -> None:
        if ip not in self.ips:
            self.ips.append(ip)

    def add_listening_socket(self, s: ListeningSocket) -> None:
        log.debug("add listening socket %s to %s with ipv6_only=%s",
                  s.socket, self.name, "none" if s.ipv6_only is None else s.ipv6_only)
        self.listening_sockets.append(s)

    def add_established_connection(self, c: Connection) -> None:
        log.debug("add established connection between %s and %s", c.local_socket, c.peer_socket)
        self.connections.append(c)

    def without_processes(self, prefixes: Iterable[str]) -> "Host":
        prefixes = tuple(prefixes)
        kept = [c for c in self.connections if not (prefixes and c.owner.name.startswith(prefixes))]
        return Host(name=self.name, ips=list(self.ips),
                    listening_sockets=list(self.listening_sockets), connections=kept)

@dataclass(frozen=True, eq=False)
class Edge:
    """connected_connection (owned by a process of connected_host) reaches
    listening_socket on listening_host.

    Edges compare and hash on the host names rather than the Host objects,
    which are mutable.
    """
    listening_host: Host
    connected_host: Host
    listening_socket: ListeningSocket
    connected_connection: Connection

    @property
    def key(self) -> Tuple[str, str, ListeningSocket, Connection]:
        return (self.listening_host.name, self.connected_host.name,
                self.listening_socket, self.connected_connection)

    def __eq__(self, other):
        if not isinstance(other, Edge):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    @property
    def is_loopback(self) -> bool:
        return self.listening_host.name == self.connected_host.name

    def __str__(self) -> str:
        c, l = self.connected_connection, self.listening_socket
        return (f"{self.connected_host.name} ({c.owner.name} {c.local_socket}) -> "
                f"{self.listening_host.name} ({l.owner.name} {l.socket})")
