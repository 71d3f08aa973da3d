from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

PACKAGE_DIR = Path(__file__).parent.resolve()

def user_path(p: Optional[str | os.PathLike]) -> Optional[Path]:
    """Where a path given on the command line points to: relative paths are
    looked up in the working directory, then next to the package."""
    if not p:
        return None
    pp = Path(p).expanduser()
    if not pp.is_absolute() and not (Path.cwd() / pp).exists():
        pp = PACKAGE_DIR / pp
    return pp.resolve()

@dataclass
class CFG:
    exclude_loopback: bool = False
    udp_enabled: bool = True
    interval: float = 2.0
    dedupe: bool = False
    hide_legend: bool = False
    captures_dir: Optional[Path] = None
    exclude_processes: List[str] = field(default_factory=list)

PORT_CLASS = {
    80: ("web", "#3489eb"), 443: ("web", "#3489eb"), 8080: ("web", "#3489eb"),
    5432: ("db", "#29a36a"), 3306: ("db", "#29a36a"), 1433: ("db", "#29a36a"), 27017: ("db", "#29a36a"),
    6379: ("cache", "#b68900"),
    5672: ("mq", "#e84a5f"), 9092: ("mq", "#e84a5f"),
    22: ("infra", "#888"), 25: ("infra", "#888"), 53: ("infra", "#888"), 123: ("infra", "#888"),
}
DEFAULT_EDGE_COLOR = "#7f7f7f"
UDP_EDGE_COLOR = "#00c2ff"
LOOPBACK_EDGE_DASHES = [4, 6]

NODE_TYPE_STYLE = {
    "host":       {"color": "#f1f3f4", "shape": "ellipse"},
    "app":        {"color": "#9aa0a6", "shape": "box"},
    "service":    {"color": "#6aa84f", "shape": "box"},
    "database":   {"color": "#3c78d8", "shape": "box"},
    "message_broker": {"color": "#e06666", "shape": "box"},
    "cache":      {"color": "#b68900", "shape": "box"},
    "load_balancer": {"color": "#8e7cc3", "shape": "box"},
}

def init_cfg_from_args(args) -> CFG:
    cfg = CFG()
    cfg.exclude_loopback = bool(getattr(args, "no_loopback", False))
    cfg.udp_enabled = not bool(getattr(args, "no_udp", False))
    cfg.interval = float(getattr(args, "interval", cfg.interval) or cfg.interval)
    cfg.dedupe = bool(getattr(args, "dedupe", False))
    cfg.hide_legend = bool(getattr(args, "hide_legend", False))
    if getattr(args, "exclude", ""):
        cfg.exclude_processes = [x.strip() for x in args.exclude.split(",") if x.strip()]
    if getattr(args, "captures", None):
        p = user_path(args.captures)
        if p.exists() and p.is_dir():
            cfg.captures_dir = p
            print(f"[*] captures: {p}")
        else:
            print(f"[warn] captures directory '{args.captures}' not found or not a directory")
    return cfg
