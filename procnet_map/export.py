from __future__ import annotations
import csv, logging
from pathlib import Path
from typing import IO, Dict, List, Sequence, Union

from .models import Edge

log = logging.getLogger(__name__)

CSV_HEADER = [
    "Source host", "Dest host",
    "Source process", "Dest process",
    "Source PID", "Dest PID",
    "Source process socket", "Dest process socket",
    "Protocol",
]

def edge_row(e: Edge) -> List[str]:
    conn, ls = e.connected_connection, e.listening_socket
    return [
        e.connected_host.name, e.listening_host.name,
        conn.owner.name, ls.owner.name,
        str(conn.owner.pid), str(ls.owner.pid),
        str(conn.local_socket), str(ls.socket),
        conn.protocol.name,
    ]

def write_edges_csv(edges: Sequence[Edge], out: Union[str, Path, IO[str]]) -> None:
    """One row per edge, client side first."""
    if isinstance(out, (str, Path)):
        with open(out, "w", newline="", encoding="utf-8") as f:
            write_edges_csv(edges, f)
        return
    w = csv.writer(out)
    w.writerow(CSV_HEADER)
    for e in edges:
        w.writerow(edge_row(e))
    log.debug("wrote %d CSV rows", len(edges))

def _q(s: str) -> str:
    return '"' + s.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n') + '"'

FONT = 'fontname="Verdana"'
HOST_ATTRS = FONT + ', shape=egg, style="filled,bold", fillcolor=white'
CONNECTED_ATTRS = FONT + ', shape=box, style="rounded,filled", fillcolor=white'
LISTENING_ATTRS = FONT + ', shape=box, style="rounded,filled", fillcolor=black, fontcolor=white'
EDGE_COLORS = ["darkblue", "darkred", "darkgreen", "darkorange3", "purple4", "deeppink4", "cyan4", "gold4"]

LEGEND = """  subgraph cluster_legend {
    label="Legend"; fontsize=9; labeljust=l; style="rounded,filled"; color=black; fillcolor=white;
    node [%s, margin=0.01, height=0.01, fontsize=8];
    edge [arrowsize=0.4];
    legend_host [label="Host", %s];
    legend_listening [label="Listening process\\nprotocol:port", %s];
    legend_connected [label="Connected process", %s];
    legend_host -> legend_listening [style=dashed];
    legend_host -> legend_connected [style=dashed];
    legend_connected -> legend_listening [color=darkblue, constraint=false];
  }
""" % (CONNECTED_ATTRS, HOST_ATTRS, LISTENING_ATTRS, CONNECTED_ATTRS)

def edges_to_dot(edges: Sequence[Edge], hide_legend: bool = False, transparent: bool = False) -> str:
    """Graphviz source: one cluster per host holding its listening and
    connected process nodes, dashed host->process edges, one colored edge per
    (connected process, listening socket)."""
    clusters: Dict[str, List[str]] = {}
    host_names: Dict[str, str] = {}
    member_edges: List[str] = []
    links: List[str] = []
    seen_nodes = set()
    seen_links = set()

    def add_node(host, node_id: str, label: str, attrs: str):
        if node_id in seen_nodes:
            return
        seen_nodes.add(node_id)
        clusters.setdefault(host.cluster_id, []).append(f"    {_q(node_id)} [label={_q(label)}, {attrs}];")
        member_edges.append(f"  {_q(host.cluster_id)} -> {_q(node_id)} [color=black, style=dashed];")

    for e in edges:
        for h in (e.listening_host, e.connected_host):
            host_names.setdefault(h.cluster_id, h.name)
            clusters.setdefault(h.cluster_id, [])
        ls, proc = e.listening_socket, e.connected_connection.owner
        add_node(e.listening_host, ls.node_id, ls.node_name, LISTENING_ATTRS)
        add_node(e.connected_host, proc.node_id, proc.name, CONNECTED_ATTRS)
        key = (proc.node_id, ls.node_id)
        if key in seen_links:
            continue
        seen_links.add(key)
        color = EDGE_COLORS[len(links) % len(EDGE_COLORS)]
        links.append(f"  {_q(proc.node_id)} -> {_q(ls.node_id)} [color={color}];")

    out = ["digraph G {",
           f'  graph [layout=dot, {FONT}, bgcolor={"transparent" if transparent else "white"}];']
    for cluster_id, stmts in clusters.items():
        out.append(f"  subgraph {_q(cluster_id)} {{")
        out.append(f'    graph [{FONT}, style="rounded,filled", color=lightgrey];')
        out.append(f"    {_q(cluster_id)} [label={_q(host_names[cluster_id])}, {HOST_ATTRS}];")
        out.extend(stmts)
        out.append("  }")
    out.extend(member_edges)
    out.extend(links)
    if not hide_legend:
        out.append(LEGEND.rstrip("\n"))
    out.append("}")
    return "\n".join(out) + "\n"
