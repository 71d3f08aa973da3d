from .loop import collect_local, collector_loop
