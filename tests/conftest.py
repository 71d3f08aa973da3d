"""Shared fixtures: three machines talking over TCP (dual-stack) and UDP."""
import ipaddress

import pytest

from procnet_map.models import Connection, Host, ListeningSocket, Process, SocketAddress, SocketType


def sock(text):
    host, port = text.rsplit(":", 1)
    return SocketAddress(ipaddress.ip_address(host.strip("[]")), int(port))


def listener(host_name, addr, proto, name, pid, ipv6_only=None):
    a = sock(addr)
    return ListeningSocket(
        address=a.address, port=a.port, protocol=proto,
        owner=Process.on_host(host_name, name, pid), host_name=host_name, ipv6_only=ipv6_only,
    )


def conn(host_name, local, peer, proto, name, pid):
    return Connection(proto, sock(local), sock(peer), Process.on_host(host_name, name, pid))


@pytest.fixture
def machines():
    machine1 = Host("machine1")
    machine1.add_listening_socket(listener("machine1", "[::ffff:10.0.0.1]:22", SocketType.TCP, "sshd", 101, False))
    machine1.add_listening_socket(listener("machine1", "0.0.0.0:443", SocketType.TCP, "nginx", 102))
    machine1.add_ip("10.0.0.1")

    machine2 = Host("machine2")
    machine2.add_ip("10.0.0.2")
    machine2.add_established_connection(
        conn("machine2", "10.0.0.2:5688", "[::ffff:10.0.0.1]:22", SocketType.TCP, "ssh", 201))
    machine2.add_established_connection(
        conn("machine2", "10.0.0.2:5681", "10.0.0.1:443", SocketType.TCP, "firefox", 202))
    machine2.add_listening_socket(
        listener("machine2", "10.0.0.3:50001", SocketType.UDP, "some_udp_service", 203))

    machine3 = Host("machine3")
    machine3.add_ip("10.0.0.3")
    machine3.add_established_connection(
        conn("machine3", "10.0.0.3:50002", "10.0.0.2:50001", SocketType.UDP, "some_udp_client", 301))

    return [machine1, machine2, machine3]


@pytest.fixture
def local_host():
    """A host whose processes talk to each other."""
    h = Host("box")
    h.add_ip("192.168.1.10")
    h.add_listening_socket(listener("box", "127.0.0.1:5432", SocketType.TCP, "postgres", 10))
    h.add_listening_socket(listener("box", "[::]:8080", SocketType.TCP, "api", 11, True))
    h.add_listening_socket(listener("box", "[::]:9000", SocketType.TCP, "dual", 12, False))
    h.add_established_connection(conn("box", "127.0.0.1:40000", "127.0.0.1:5432", SocketType.TCP, "api", 11))
    h.add_established_connection(conn("box", "[::1]:40001", "[::1]:8080", SocketType.TCP, "curl", 13))
    h.add_established_connection(conn("box", "127.0.0.1:40002", "127.0.0.1:8080", SocketType.TCP, "curl", 13))
    h.add_established_connection(conn("box", "192.168.1.10:40003", "192.168.1.10:9000", SocketType.TCP, "curl", 13))
    return h
