"""Map the network interactions between processes of a group of machines."""
from .models import Connection, Edge, Host, ListeningSocket, Process, SocketAddress, SocketType
from .topology import EmptyInputError, Update, aggregate_updates, build_connections_list, dedupe_edges, match

__version__ = "0.3.0"
