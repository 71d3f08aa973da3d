from __future__ import annotations
import io
from flask import Flask, Response, jsonify, request
import orjson

from ..config import CFG
from ..export import write_edges_csv
from ..rules import load_rules
from ..topology.graph_build import edges_to_graph
from ..topology.matcher import build_connections_list, dedupe_edges
from .ui import render_html

def dumps(obj) -> str:
    return orjson.dumps(obj).decode()

def current_edges(cfg: CFG, snap):
    # match on a consistent copy of the hosts, outside the lock
    with snap.lock:
        hosts = snap.hosts()
    edges = build_connections_list(hosts, cfg.exclude_loopback)
    return dedupe_edges(edges) if cfg.dedupe else edges

def create_app(cfg: CFG, snap) -> Flask:
    app = Flask(__name__)

    @app.get("/")
    def index():
        return Response(render_html(cfg.udp_enabled), mimetype="text/html")

    @app.get("/api/graph")
    def api_graph():
        edges = current_edges(cfg, snap)
        with snap.lock:
            rules = snap.rules
        app.logger.debug("graph: %d edges", len(edges))
        return Response(dumps(edges_to_graph(edges, rules)), mimetype="application/json")

    @app.get("/api/edges.csv")
    def api_edges_csv():
        buf = io.StringIO()
        write_edges_csv(current_edges(cfg, snap), buf)
        resp = Response(buf.getvalue(), mimetype="text/csv")
        resp.headers["Content-Disposition"] = "attachment; filename=connections.csv"
        return resp

    def _mode():
        return {"ok": True, "recording": snap.recording, "holding": snap.holding}

    @app.post("/api/record/start")
    def api_record_start():
        with snap.lock:
            snap.start_recording()
            state = _mode()
        app.logger.info("recording started")
        return jsonify(state)

    @app.post("/api/record/stop")
    def api_record_stop():
        with snap.lock:
            snap.stop_recording()
            state = _mode()
        app.logger.info("recording stopped")
        return jsonify(state)

    @app.post("/api/live")
    def api_live():
        with snap.lock:
            snap.resume_live()
            state = _mode()
        app.logger.info("back to live mode")
        return jsonify(state)

    @app.post("/api/reload_rules")
    def api_reload_rules():
        path = request.json.get("path") if request.is_json else request.args.get("path")
        rules = load_rules(path)
        with snap.lock:
            snap.rules = rules
        return jsonify({"ok": True, "rules": len(rules)})

    return app
