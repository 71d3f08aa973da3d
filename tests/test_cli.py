import csv
import threading

import pytest

from procnet_map import main as cli
from procnet_map.collectors import collect_local, collector_loop
from procnet_map.config import CFG, init_cfg_from_args
from procnet_map.models import Host, SocketType
from procnet_map.topology import Snapshot

from conftest import conn, listener
from test_captures import captures  # noqa: F401


def test_cfg_from_args(tmp_path, capsys):
    args = cli.parse_args(["serve", "--no-udp", "--interval", "5", "--exclude", "chrome, ssh,",
                           "--captures", str(tmp_path), "--dedupe"])
    cfg = init_cfg_from_args(args)
    assert cfg.udp_enabled is False
    assert cfg.interval == 5.0
    assert cfg.exclude_processes == ["chrome", "ssh"]
    assert cfg.captures_dir == tmp_path.resolve()
    assert cfg.dedupe and not cfg.exclude_loopback
    assert "[*] captures" in capsys.readouterr().out


def test_cfg_missing_captures_dir(tmp_path, capsys):
    cfg = init_cfg_from_args(cli.parse_args(["serve", "--captures", str(tmp_path / "missing")]))
    assert cfg.captures_dir is None
    assert "[warn]" in capsys.readouterr().out


def test_csv_command(captures, tmp_path):  # noqa: F811
    out = tmp_path / "out.csv"
    cli.main(["csv", str(captures), str(out)])
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert len(rows) == 3


def test_graph_command_writes_dot_source(captures, tmp_path):  # noqa: F811
    out = tmp_path / "net.dot"
    cli.main(["graph", "--hide-legend", str(captures), str(out)])
    text = out.read_text(encoding="utf-8")
    assert text.startswith("digraph G {")
    assert "cluster_legend" not in text


def test_graph_command_needs_an_extension(captures, tmp_path):  # noqa: F811
    with pytest.raises(SystemExit) as e:
        cli.main(["graph", str(captures), str(tmp_path / "net")])
    assert e.value.code == 1


def test_missing_captures_exit(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(["csv", str(tmp_path / "missing"), str(tmp_path / "out.csv")])


def _fake_host(hostname=None):
    h = Host(hostname or "local", ips=["10.0.0.1"])
    h.add_listening_socket(listener(h.name, "0.0.0.0:53", SocketType.UDP, "dnsmasq", 1))
    h.add_listening_socket(listener(h.name, "0.0.0.0:22", SocketType.TCP, "sshd", 2))
    h.add_established_connection(conn(h.name, "10.0.0.1:4000", "10.0.0.2:53", SocketType.UDP, "dig", 3))
    h.add_established_connection(conn(h.name, "10.0.0.1:4001", "10.0.0.2:80", SocketType.TCP, "chrome", 4))
    return h


@pytest.fixture
def fake_collectors(monkeypatch):
    monkeypatch.setattr("procnet_map.collectors.loop.linux.collect", _fake_host)
    monkeypatch.setattr("procnet_map.collectors.loop.generic.collect", lambda hostname=None, udp=True: _fake_host(hostname))


def test_collect_local_filters(fake_collectors):
    cfg = CFG(udp_enabled=False, exclude_processes=["chr"])
    host = collect_local(cfg, "box")
    assert host.name == "box"
    assert [s.owner.name for s in host.listening_sockets] == ["sshd"]
    assert host.connections == []


def test_collector_loop_feeds_snapshot(fake_collectors):
    snap = Snapshot()
    stop = threading.Event()

    def add_update(update, _orig=snap.add_update):
        _orig(update)
        stop.set()

    snap.add_update = add_update
    collector_loop(CFG(), snap, 0.01, stop=stop, hostname="box")
    hosts = snap.hosts()
    assert [h.name for h in hosts] == ["box"]
    assert len(hosts[0].connections) == 2
