from __future__ import annotations
import logging, threading
from typing import Dict, Iterable, List

from ..models import Host
from ..rules import NodeRule
from .aggregate import Update, aggregate_updates

log = logging.getLogger(__name__)

class Snapshot:
    """Hosts shared between the collector thread and the web app.

    Three modes: live (latest update per host), recording (every update,
    aggregated on read) and holding (the aggregate of the last recording,
    kept until a new recording starts or live mode resumes).

    Callers hold ``lock`` around the methods below so that the matcher
    always runs on a consistent set.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self.updates: Dict[str, List[Update]] = {}
        self.latest: Dict[str, Update] = {}
        self.static_hosts: List[Host] = []
        self.rules: List[NodeRule] = []
        self.recording = False
        self.holding = False

    def add_update(self, update: Update) -> None:
        name = update.host.name
        self.latest[name] = update
        if self.recording:
            self.updates.setdefault(name, []).append(update)
        elif not self.holding:
            self.updates[name] = [update]

    def _restart_from_latest(self) -> None:
        self.updates = {name: [u] for name, u in self.latest.items()}

    def start_recording(self) -> None:
        self._restart_from_latest()
        self.recording, self.holding = True, False

    def stop_recording(self) -> None:
        if not self.recording:
            return
        self.updates = {name: [Update(aggregate_updates(updates), updates[-1].taken_at)]
                        for name, updates in self.updates.items() if updates}
        self.recording, self.holding = False, True
        log.info("recording stopped, holding %d aggregated hosts", len(self.updates))

    def resume_live(self) -> None:
        self._restart_from_latest()
        self.recording = self.holding = False

    def set_static_hosts(self, hosts: Iterable[Host]) -> None:
        self.static_hosts = list(hosts)

    def hosts(self) -> List[Host]:
        live = []
        for name, updates in self.updates.items():
            if not updates:
                continue
            live.append(aggregate_updates(updates) if len(updates) > 1 else updates[-1].host)
        return self.static_hosts + live
