"""Build the configured ContentStore."""

from janus_lite.config import Config
from janus_lite.log_config import get_logger
from janus_lite.persistence import ContentStore

log = get_logger("factory")


def create_store(config: Config | None = None) -> ContentStore:
    """Open the store selected by config.store.

    "file" opens (and reconciles) the markdown tree at config.data_path.
    "graph" connects to the graph backend chosen by config.graph_backend.

    Raises:
        PersistenceError: The store cannot be opened
    """
    config = config or Config()

    if config.store == "graph":
        from janus_lite.db import GraphPersistence, create_graph_backend

        backend = create_graph_backend(
            config.graph_backend,
            bolt_host=config.bolt_host,
            bolt_port=config.bolt_port,
            bolt_username=config.bolt_username,
            bolt_password=config.bolt_password,
            falkor_host=config.falkor_host,
            falkor_port=config.falkor_port,
            falkor_password=config.falkor_password or None,
            kuzu_path=config.kuzu_path,
        )
        store = GraphPersistence(backend)
    else:
        from janus_lite.store import FilePersistence, FileSystemStorage

        store = FilePersistence(FileSystemStorage(config.data_path, auto_commit=config.auto_commit))

    log.info(f"Opened {store.store_name} store")
    return store
