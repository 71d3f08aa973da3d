from __future__ import annotations
import argparse, logging, subprocess, sys, threading
from pathlib import Path

from .config import CFG, init_cfg_from_args
from .topology import Snapshot, build_connections_list, dedupe_edges
from .rules import load_rules
from .collectors import collector_loop
from .collectors.directory import build_hosts, scan_dir
from .export import edges_to_dot, write_edges_csv

log = logging.getLogger("procnet_map")

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description='Map the network interactions between processes of a group of machines')
    ap.add_argument('-v', '--verbose', action='count', default=0)
    sub = ap.add_subparsers(dest='cmd', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--no-loopback', action='store_true', help='do not match connections within a host')
    common.add_argument('--dedupe', action='store_true', help='drop edges found by more than one matching pass')
    common.add_argument('--exclude', type=str, default='', help='comma-separated process name prefixes to ignore')

    sv = sub.add_parser('serve', parents=[common], help='live graph of this machine (and captures) in the browser')
    sv.add_argument('--port', type=int, default=8765)
    sv.add_argument('--interval', type=float, default=2.0)
    sv.add_argument('--rules', type=str, default=None, help='YAML/JSON node rules')
    sv.add_argument('--no-udp', action='store_true', help='ignore UDP sockets')
    sv.add_argument('--no-local', action='store_true', help='only show hosts loaded from --captures')
    sv.add_argument('--captures', type=str, default=None, help='directory of captured command outputs')

    gr = sub.add_parser('graph', parents=[common], help='render a Graphviz graph of the captured hosts')
    gr.add_argument('captures', help='directory of captured command outputs')
    gr.add_argument('output', help='output file; .dot/.gv writes the source, other extensions go through Graphviz')
    gr.add_argument('--hide-legend', action='store_true')
    gr.add_argument('--transparent-bg', action='store_true')
    gr.add_argument('--vertical', action='store_true', help='arrange the hosts vertically')

    cs = sub.add_parser('csv', parents=[common], help='write one CSV row per matched connection')
    cs.add_argument('captures', help='directory of captured command outputs')
    cs.add_argument('output', help='CSV output file')
    return ap.parse_args(argv)

def load_captures(cfg: CFG, path) -> list:
    hosts = build_hosts(scan_dir(path))
    if cfg.exclude_processes:
        hosts = [h.without_processes(cfg.exclude_processes) for h in hosts]
    print(f"[*] loaded {len(hosts)} hosts from {path}")
    return hosts

def match_captures(cfg: CFG, path):
    edges = build_connections_list(load_captures(cfg, path), cfg.exclude_loopback)
    return dedupe_edges(edges) if cfg.dedupe else edges

def run_graphviz(dot_code: str, output: Path, vertical: bool) -> None:
    args = ["dot", f"-T{output.suffix[1:]}", "-o", str(output), "-Grankdir=LR" if vertical else "-Grankdir=TB"]
    log.debug("Generating graph with Graphviz: %s", " ".join(args))
    proc = subprocess.run(args, input=dot_code, text=True, capture_output=True)
    if proc.returncode != 0:
        raise RuntimeError(proc.stderr.strip() or f"dot exited with {proc.returncode}")

def serve(args, cfg: CFG) -> None:
    snap = Snapshot()
    snap.rules = load_rules(args.rules)
    if cfg.captures_dir:
        snap.set_static_hosts(load_captures(cfg, cfg.captures_dir))
    if not args.no_local:
        t = threading.Thread(target=collector_loop, args=(cfg, snap, cfg.interval), daemon=True)
        t.start()

    from .web import create_app
    app = create_app(cfg, snap)
    print(f"[*] Serving on http://localhost:{args.port}")
    app.run(host='0.0.0.0', port=args.port, debug=False, use_reloader=False)

def main(argv=None):
    args = parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    cfg = init_cfg_from_args(args)

    try:
        if args.cmd == 'serve':
            serve(args, cfg)
        elif args.cmd == 'graph':
            dot_code = edges_to_dot(match_captures(cfg, args.captures), hide_legend=cfg.hide_legend,
                                    transparent=args.transparent_bg)
            out = Path(args.output)
            if out.suffix in ('.dot', '.gv'):
                out.write_text(dot_code, encoding="utf-8")
            elif not out.suffix:
                raise ValueError("the output file needs an extension to pass to Graphviz")
            else:
                run_graphviz(dot_code, out, args.vertical)
            print(f"[*] graph written to {out}")
        elif args.cmd == 'csv':
            write_edges_csv(match_captures(cfg, args.captures), args.output)
            print(f"[*] connections written to {args.output}")
    except (OSError, ValueError, RuntimeError) as e:
        log.error("%s", e)
        sys.exit(1)

if __name__ == '__main__':
    main()
