from .aggregate import EmptyInputError, Update, aggregate_updates
from .matcher import build_connections_list, dedupe_edges, match
from .snapshot import Snapshot
