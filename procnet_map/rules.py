from __future__ import annotations
import json, logging, re
from dataclasses import dataclass
from typing import List, Optional

import yaml

from .models import Process
from .config import user_path

log = logging.getLogger(__name__)

@dataclass
class NodeRule:
    """Classifies a process node of the diagram.

    match_name accepts a plain name, '/regex/' or '/regex/i'.
    """
    match_name: str | None = None
    match_host: str | None = None
    match_port: int | None = None
    type: str = "app"
    label: str | None = None

def _name_matches(pattern: str, name: str) -> bool:
    if pattern.startswith('/') and pattern.endswith(('/i', '/I')):
        return re.search(pattern[1:-2], name, flags=re.IGNORECASE) is not None
    if pattern.startswith('/') and pattern.endswith('/') and len(pattern) > 1:
        return re.search(pattern[1:-1], name) is not None
    return pattern == name

def node_type_for(proc: Process, host_name: str, port: int | None, rules: List[NodeRule],
                  default: str = 'app') -> tuple[str, str]:
    for r in rules:
        if r.match_host and r.match_host != host_name:
            continue
        if r.match_port is not None and r.match_port != port:
            continue
        if r.match_name and not _name_matches(r.match_name, proc.name or ''):
            continue
        if not (r.match_name or r.match_host or r.match_port is not None):
            continue
        return r.type, (r.label or proc.name)
    return default, (proc.name or f'pid {proc.pid}')

def load_rules(path: Optional[str]) -> list[NodeRule]:
    if not path:
        return []
    p = user_path(path)
    if not p.exists():
        print(f"[warn] rules not found: {p}")
        return []
    txt = p.read_text(encoding="utf-8")
    data = yaml.safe_load(txt) if p.suffix in (".yaml", ".yml") else json.loads(txt)
    rules = [NodeRule(**r) for r in (data or [])]
    log.info("loaded %d node rules from %s", len(rules), p)
    return rules
