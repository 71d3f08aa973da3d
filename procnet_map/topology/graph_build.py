from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Sequence

from ..config import DEFAULT_EDGE_COLOR, LOOPBACK_EDGE_DASHES, NODE_TYPE_STYLE, PORT_CLASS, UDP_EDGE_COLOR
from ..models import Edge, SocketType
from ..rules import NodeRule, node_type_for

def _host_node(host) -> dict:
    style = NODE_TYPE_STYLE['host']
    return {
        'id': host.cluster_id,
        'label': host.name,
        'title': ", ".join(str(ip) for ip in host.ips),
        'color': style['color'],
        'shape': style['shape'],
        'type': 'host',
        'group': host.name,
    }

def _process_node(node_id: str, label: str, title: str, ntype: str, host_name: str) -> dict:
    style = NODE_TYPE_STYLE.get(ntype, NODE_TYPE_STYLE['app'])
    return {
        'id': node_id,
        'label': label,
        'title': title,
        'color': style['color'],
        'shape': style['shape'],
        'type': ntype,
        'group': host_name,
    }

def _membership_edge(host, node_id: str) -> dict:
    return {
        'id': f"{host.cluster_id}->{node_id}",
        'from': host.cluster_id, 'to': node_id,
        'color': '#000000', 'dashes': True, 'arrows': '',
    }

def edges_to_graph(edges: Sequence[Edge], rules: List[NodeRule] | None = None) -> dict:
    """vis-network {nodes, edges}: one node per host, per listening socket and
    per connected process, grouped by host."""
    rules = rules or []
    nodes: Dict[str, dict] = {}
    links: Dict[str, dict] = {}

    counts = defaultdict(int)
    for e in edges:
        counts[(e.connected_connection.owner.node_id, e.listening_socket.node_id)] += 1

    for e in edges:
        lhost, chost = e.listening_host, e.connected_host
        ls, conn = e.listening_socket, e.connected_connection
        for h in (lhost, chost):
            nodes.setdefault(h.cluster_id, _host_node(h))

        if ls.node_id not in nodes:
            ntype, label = node_type_for(ls.owner, lhost.name, ls.port, rules, default='service')
            nodes[ls.node_id] = _process_node(
                ls.node_id, ls.node_name.replace(ls.owner.name, label, 1),
                f"{lhost.name}: {ls.owner.name} (PID {ls.owner.pid}) on {ls.socket}", ntype, lhost.name)
            links.setdefault(f"{lhost.cluster_id}->{ls.node_id}", _membership_edge(lhost, ls.node_id))

        proc = conn.owner
        if proc.node_id not in nodes:
            ntype, label = node_type_for(proc, chost.name, None, rules)
            nodes[proc.node_id] = _process_node(
                proc.node_id, label, f"{chost.name}: {proc.name} (PID {proc.pid})", ntype, chost.name)
            links.setdefault(f"{chost.cluster_id}->{proc.node_id}", _membership_edge(chost, proc.node_id))

        edge_id = f"{proc.node_id}->{ls.node_id}"
        if edge_id in links:
            continue
        udp = conn.protocol is SocketType.UDP
        _, color = PORT_CLASS.get(ls.port, ('other', DEFAULT_EDGE_COLOR))
        label = f":{conn.local_socket.port}→:{ls.port}"
        title = f"{conn.local_socket} → {conn.peer_socket} | {conn.protocol.name}"
        cnt = counts[(proc.node_id, ls.node_id)]
        if cnt > 1:
            label = f"{label} ×{cnt}"
            title = f"{title} | sockets: {cnt}"
        links[edge_id] = {
            'id': edge_id,
            'from': proc.node_id, 'to': ls.node_id,
            'label': label,
            'title': title,
            'color': UDP_EDGE_COLOR if udp else color,
            'dashes': LOOPBACK_EDGE_DASHES if e.is_loopback else False,
            'proto': conn.protocol.name,
            'arrows': 'to',
            'smooth': {'enabled': True, 'type': 'continuous'},
        }

    return {'nodes': list(nodes.values()), 'edges': list(links.values())}
