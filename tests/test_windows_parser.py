import codecs
import ipaddress
import logging

from procnet_map.collectors.windows import (
    host_from_files, parse_ip_output, parse_netstat_output, parse_tasklist_output, read_capture,
)
from procnet_map.models import SocketType

TASKLIST_SAMPLE = """\
"Image Name","PID","Session Name","Session#","Mem Usage"
"System Idle Process","0","Services","0","8 K"
"System","4","Services","0","144 K"
"svchost.exe","1044","Services","0","12,340 K"
"sqlservr.exe","2200","Services","0","250,112 K"
"chrome.exe","5120","Console","1","180,004 K"
"chrome.exe","5120","Console","1","180,004 K"
"""

IPADDRESS_SAMPLE = """\

IPAddress         : fe80::1c2a:3b4c:5d6e:7f80%12
InterfaceIndex    : 12
InterfaceAlias    : Ethernet
AddressFamily     : IPv6

IPAddress         : 10.0.0.20
InterfaceIndex    : 12
InterfaceAlias    : Ethernet
AddressFamily     : IPv4

IPAddress         : 127.0.0.1
InterfaceIndex    : 1
InterfaceAlias    : Loopback Pseudo-Interface 1
AddressFamily     : IPv4
"""

NETSTAT_SAMPLE = """\

Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       1044
  TCP    0.0.0.0:1433           0.0.0.0:0              LISTENING       2200
  TCP    10.0.0.20:1433         10.0.0.3:51000         ESTABLISHED     2200
  TCP    10.0.0.20:49800        10.0.0.1:443           ESTABLISHED     5120
  TCP    10.0.0.20:49801        10.0.0.1:443           TIME_WAIT       0
  TCP    10.0.0.20:49802        10.0.0.1:443           ESTABLISHED     7777
  TCP    [::]:135               [::]:0                 LISTENING       1044
  TCP    [fe80::1c2a:3b4c:5d6e:7f80%12]:49900  [fe80::2%12]:445  ESTABLISHED  4
"""

NAMES = parse_tasklist_output(TASKLIST_SAMPLE)


def test_parse_tasklist_output():
    assert NAMES == {
        0: "System Idle Process",
        4: "System",
        1044: "svchost.exe",
        2200: "sqlservr.exe",
        5120: "chrome.exe",
    }


def test_parse_ip_output():
    assert parse_ip_output(IPADDRESS_SAMPLE) == [
        ipaddress.ip_address("fe80::1c2a:3b4c:5d6e:7f80"),
        ipaddress.ip_address("10.0.0.20"),
        ipaddress.ip_address("127.0.0.1"),
    ]


def test_listening_sockets():
    host = parse_netstat_output(NETSTAT_SAMPLE, "winbox", NAMES, parse_ip_output(IPADDRESS_SAMPLE))
    found = [(s.owner.name, s.owner.pid, str(s.address), s.port, s.ipv6_only) for s in host.listening_sockets]
    assert found == [
        ("svchost.exe", 1044, "0.0.0.0", 135, None),
        ("sqlservr.exe", 2200, "0.0.0.0", 1433, None),
        ("svchost.exe", 1044, "::", 135, True),
    ]
    assert all(s.protocol is SocketType.TCP for s in host.listening_sockets)
    assert ipaddress.ip_address("::ffff:10.0.0.20") in host.ips


def test_established_connections():
    host = parse_netstat_output(NETSTAT_SAMPLE, "winbox", NAMES)
    found = [(c.owner.name, str(c.local_socket), str(c.peer_socket)) for c in host.connections]
    assert found == [
        ("sqlservr.exe", "10.0.0.20:1433", "10.0.0.3:51000"),
        ("chrome.exe", "10.0.0.20:49800", "10.0.0.1:443"),
        ("System", "[fe80::1c2a:3b4c:5d6e:7f80]:49900", "[fe80::2]:445"),
    ]
    assert host.connections[1].owner.node_id == "winbox_chrome.exe"


def test_unknown_pid_is_skipped_with_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="procnet_map.collectors.windows"):
        host = parse_netstat_output(NETSTAT_SAMPLE, "winbox", NAMES)
    assert any("7777" in r.getMessage() for r in caplog.records)
    assert all(c.owner.pid != 7777 for c in host.connections)


def test_read_capture_utf16_with_bom(tmp_path):
    p = tmp_path / "winbox.windows_tasklist"
    p.write_bytes(codecs.BOM_UTF16_LE + TASKLIST_SAMPLE.encode("utf-16-le"))
    assert read_capture(p) == TASKLIST_SAMPLE


def test_read_capture_utf16_without_bom(tmp_path):
    p = tmp_path / "winbox.windows_netstat"
    p.write_bytes(NETSTAT_SAMPLE.encode("utf-16-le"))
    assert read_capture(p) == NETSTAT_SAMPLE


def test_read_capture_utf8(tmp_path):
    p = tmp_path / "winbox.windows_ip"
    p.write_bytes(codecs.BOM_UTF8 + IPADDRESS_SAMPLE.encode("utf-8"))
    assert read_capture(p) == IPADDRESS_SAMPLE


def test_host_from_files(tmp_path):
    netstat = tmp_path / "winbox.windows_netstat"
    netstat.write_bytes(codecs.BOM_UTF16_LE + NETSTAT_SAMPLE.encode("utf-16-le"))
    tasklist = tmp_path / "winbox.windows_tasklist"
    tasklist.write_text(TASKLIST_SAMPLE, encoding="utf-8")
    ip = tmp_path / "winbox.windows_ip"
    ip.write_text(IPADDRESS_SAMPLE, encoding="utf-8")

    host = host_from_files("winbox", netstat, tasklist, ip)
    assert host.name == "winbox"
    assert ipaddress.ip_address("10.0.0.20") in host.ips
    assert len(host.listening_sockets) == 3
    assert len(host.connections) == 3
