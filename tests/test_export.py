import csv
import io

from procnet_map.export import CSV_HEADER, edges_to_dot, write_edges_csv
from procnet_map.topology import build_connections_list


def test_csv_rows(machines, tmp_path):
    out = tmp_path / "connections.csv"
    write_edges_csv(build_connections_list(machines, False), out)
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == CSV_HEADER
    assert len(rows) == 4
    assert rows[2] == ["machine2", "machine1", "firefox", "nginx", "202", "102",
                       "10.0.0.2:5681", "0.0.0.0:443", "TCP"]
    assert rows[3][-1] == "UDP"


def test_csv_to_file_object(machines):
    buf = io.StringIO()
    write_edges_csv([], buf)
    assert buf.getvalue().splitlines() == [",".join(CSV_HEADER)]


def test_dot_output(machines):
    edges = build_connections_list(machines, False)
    dot = edges_to_dot(edges)
    assert dot.startswith("digraph G {")
    assert dot.rstrip().endswith("}")
    for host in machines:
        assert f'subgraph "{host.cluster_id}"' in dot
    nginx = next(e.listening_socket for e in edges if e.listening_socket.owner.name == "nginx")
    firefox = next(e.connected_connection.owner for e in edges if e.connected_connection.owner.name == "firefox")
    assert f'"{firefox.node_id}" -> "{nginx.node_id}" [color=' in dot
    assert '"nginx\\ntcp4:443"' in dot
    assert "cluster_legend" in dot
    assert "bgcolor=white" in dot


def test_dot_options(machines):
    dot = edges_to_dot(build_connections_list(machines, False), hide_legend=True, transparent=True)
    assert "cluster_legend" not in dot
    assert "bgcolor=transparent" in dot


def test_dot_links_are_unique(local_host):
    edges = build_connections_list([local_host], False)
    dot = edges_to_dot(edges + edges, hide_legend=True)
    assert dot.count("[color=dark") == len(edges)
