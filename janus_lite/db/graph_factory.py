"""Graph backend factory with auto-detection and fallback.

Backend selection:
1. Memgraph or Neo4j over Bolt (server, full Cypher)
2. FalkorDB if no Bolt server answers
3. KuzuDB (embedded, works everywhere)

Environment variables for override:
- JANUS_LITE_GRAPH_BACKEND: Force 'memgraph', 'neo4j', 'falkordb' or 'kuzu'
- JANUS_LITE_KUZU_PATH: Override KuzuDB database path
- JANUS_LITE_BOLT_HOST / JANUS_LITE_BOLT_PORT: Bolt server (default: localhost:7687)
- JANUS_LITE_BOLT_USERNAME / JANUS_LITE_BOLT_PASSWORD: Bolt authentication
- JANUS_LITE_FALKOR_HOST / JANUS_LITE_FALKOR_PORT: FalkorDB (default: localhost:6379)
- JANUS_LITE_FALKOR_PASSWORD: FalkorDB/Redis password
"""

import os
import time
from pathlib import Path
from typing import Literal

from janus_lite.db.graph_protocol import GraphBackend
from janus_lite.errors import PersistenceError
from janus_lite.log_config import get_logger

log = get_logger("graph.factory")

# Bolt servers may still be starting when the CLI runs
BOLT_READY_TIMEOUT = int(os.environ.get("JANUS_LITE_BOLT_READY_TIMEOUT", "30"))  # seconds
BOLT_READY_INTERVAL = float(os.environ.get("JANUS_LITE_BOLT_READY_INTERVAL", "0.5"))  # seconds
BOLT_MAX_INTERVAL = 5.0

BACKEND_NAMES = ("memgraph", "neo4j", "falkordb", "kuzu")

BackendType = Literal["memgraph", "neo4j", "falkordb", "kuzu", "auto"]


def create_graph_backend(
    backend: BackendType = "auto",
    bolt_host: str | None = None,
    bolt_port: int | None = None,
    bolt_username: str | None = None,
    bolt_password: str | None = None,
    falkor_host: str | None = None,
    falkor_port: int | None = None,
    falkor_password: str | None = None,
    kuzu_path: str | Path | None = None,
) -> GraphBackend:
    """Create a graph backend with auto-detection and fallback.

    Selection order:
    1. Environment variable JANUS_LITE_GRAPH_BACKEND if set
    2. Explicit backend parameter if not "auto"
    3. Auto-detection: Bolt (Memgraph) first, then FalkorDB, else KuzuDB

    Returns:
        Initialized GraphBackend instance with its schema in place

    Raises:
        PersistenceError: If the chosen backend cannot be initialized
    """
    env_backend = os.environ.get("JANUS_LITE_GRAPH_BACKEND", "").lower()
    if env_backend in BACKEND_NAMES:
        backend = env_backend
        log.info(f"Using backend from environment: {backend}")

    if bolt_host is None:
        bolt_host = os.environ.get("JANUS_LITE_BOLT_HOST", "localhost")
    if bolt_port is None:
        bolt_port = int(os.environ.get("JANUS_LITE_BOLT_PORT", "7687"))
    if bolt_username is None:
        bolt_username = os.environ.get("JANUS_LITE_BOLT_USERNAME", "")
    if bolt_password is None:
        bolt_password = os.environ.get("JANUS_LITE_BOLT_PASSWORD", "")

    if falkor_host is None:
        falkor_host = os.environ.get("JANUS_LITE_FALKOR_HOST", "localhost")
    if falkor_port is None:
        falkor_port = int(os.environ.get("JANUS_LITE_FALKOR_PORT", "6379"))
    if falkor_password is None:
        falkor_password = os.environ.get("JANUS_LITE_FALKOR_PASSWORD") or None

    kuzu_path_override = os.environ.get("JANUS_LITE_KUZU_PATH")
    if kuzu_path_override:
        kuzu_path = kuzu_path_override
    if kuzu_path is None:
        kuzu_path = Path.home() / ".janus_lite" / "kuzu"

    if backend in ("memgraph", "neo4j"):
        return _create_bolt(backend, bolt_host, bolt_port, bolt_username, bolt_password)

    if backend == "falkordb":
        return _create_falkordb(falkor_host, falkor_port, falkor_password)

    if backend == "kuzu":
        return _create_kuzu(kuzu_path)

    log.info("Auto-detecting graph backend...")

    from janus_lite.db.memgraph_backend import is_bolt_available

    if is_bolt_available(bolt_host, bolt_port, bolt_username, bolt_password):
        log.info("Bolt server detected, using Memgraph backend")
        return _create_bolt("memgraph", bolt_host, bolt_port, bolt_username, bolt_password)

    if _is_falkordb_available(falkor_host, falkor_port, falkor_password):
        log.info("FalkorDB detected and healthy, using FalkorDB backend")
        return _create_falkordb(falkor_host, falkor_port, falkor_password)

    log.info("No graph server available, falling back to KuzuDB")
    return _create_kuzu(kuzu_path)


def _wait_for_bolt_ready(host: str, port: int, username: str = "", password: str = "") -> bool:
    """Wait for a Bolt server to accept connections, with exponential backoff.

    Returns:
        True if the server is ready, False on timeout or a non-connection error
    """
    from neo4j import GraphDatabase

    start_time = time.time()
    last_error = None
    attempts = 0
    current_interval = BOLT_READY_INTERVAL

    while (time.time() - start_time) < BOLT_READY_TIMEOUT:
        attempts += 1
        try:
            uri = f"bolt://{host}:{port}"
            if username or password:
                driver = GraphDatabase.driver(uri, auth=(username, password))
            else:
                driver = GraphDatabase.driver(uri)
            try:
                driver.verify_connectivity()
            finally:
                driver.close()

            if attempts > 1:
                log.info(f"Bolt server ready after {time.time() - start_time:.1f}s ({attempts} attempts)")
            return True

        except Exception as e:
            last_error = e
            error_msg = str(e).lower()

            # Connection errors: server not started yet
            if "connection refused" in error_msg or "connect" in error_msg:
                if attempts == 1:
                    log.debug(f"Waiting for Bolt server at {host}:{port}...")
                time.sleep(current_interval)
                current_interval = min(current_interval * 1.5, BOLT_MAX_INTERVAL)
                continue

            log.debug(f"Bolt server not available at {host}:{port}: {e}")
            return False

    log.warning(f"Bolt server not ready after {time.time() - start_time:.1f}s ({attempts} attempts): {last_error}")
    return False


def _create_bolt(
    backend: str,
    host: str,
    port: int,
    username: str = "",
    password: str = "",
) -> GraphBackend:
    """Create a Memgraph or Neo4j backend.

    Raises:
        PersistenceError: If the server never becomes ready or init fails
    """
    try:
        from janus_lite.db.memgraph_backend import create_memgraph_backend, create_neo4j_backend
    except ImportError as e:
        raise PersistenceError("connect", "neo4j driver not installed. Run: pip install neo4j") from e

    if not _wait_for_bolt_ready(host, port, username, password):
        raise PersistenceError("connect", f"{backend} not ready at {host}:{port} after {BOLT_READY_TIMEOUT}s")

    create = create_neo4j_backend if backend == "neo4j" else create_memgraph_backend
    try:
        instance = create(host, port, username, password)
    except Exception as e:
        log.error(f"Failed to create {backend} backend: {e}")
        raise PersistenceError("connect", f"{backend} initialization failed: {e}") from e

    if not instance.health_check():
        instance.close()
        raise PersistenceError("connect", f"{backend} health check failed after backend creation")

    log.info(f"{backend} backend initialized and verified at {host}:{port}")
    return instance


def _is_falkordb_available(host: str, port: int, password: str | None = None) -> bool:
    try:
        from janus_lite.db.falkor_backend import is_falkordb_available
    except ImportError:
        log.debug("FalkorDB package not installed")
        return False
    return is_falkordb_available(host, port, password)


def _create_falkordb(host: str, port: int, password: str | None = None) -> GraphBackend:
    """Create a FalkorDB backend.

    Raises:
        PersistenceError: If connection or init fails
    """
    try:
        from janus_lite.db.falkor_backend import create_falkor_backend

        instance = create_falkor_backend(host, port, password)
    except ImportError as e:
        log.error("FalkorDB package not installed. Install with: pip install falkordb")
        raise PersistenceError("connect", "FalkorDB not installed. Run: pip install falkordb") from e
    except Exception as e:
        log.error(f"Failed to create FalkorDB backend: {e}")
        raise PersistenceError("connect", f"FalkorDB initialization failed: {e}") from e

    if not instance.health_check():
        raise PersistenceError("connect", "FalkorDB health check failed after backend creation")

    log.info(f"FalkorDB backend initialized and verified at {host}:{port}")
    return instance


def _create_kuzu(db_path: str | Path) -> GraphBackend:
    """Create a KuzuDB backend.

    Raises:
        PersistenceError: If kuzu is missing or the database cannot be opened
    """
    try:
        from janus_lite.db.kuzu_backend import create_kuzu_backend

        instance = create_kuzu_backend(db_path)
        log.info(f"KuzuDB backend initialized at {db_path}")
        return instance

    except ImportError as e:
        log.error("KuzuDB package not installed. Install with: pip install kuzu")
        raise PersistenceError("connect", "KuzuDB not installed. Run: pip install kuzu") from e

    except Exception as e:
        log.error(f"Failed to create KuzuDB backend: {e}")
        raise PersistenceError("connect", f"KuzuDB initialization failed: {e}", path=str(db_path)) from e


def get_backend_info(
    bolt_host: str = "localhost",
    bolt_port: int = 7687,
    falkor_host: str = "localhost",
    falkor_port: int = 6379,
) -> dict:
    """Get information about available backends.

    Returns:
        Dict with installed/available status per backend and the one
        auto-detection would pick
    """
    info = {
        name: {"installed": False, "available": False, "error": None}
        for name in ("bolt", "falkordb", "kuzu")
    }
    info["active"] = None
    info["env_override"] = os.environ.get("JANUS_LITE_GRAPH_BACKEND")

    try:
        import neo4j  # noqa: F401

        from janus_lite.db.memgraph_backend import is_bolt_available

        info["bolt"]["installed"] = True
        info["bolt"]["available"] = is_bolt_available(bolt_host, bolt_port)
    except ImportError as e:
        info["bolt"]["error"] = str(e)

    try:
        import falkordb  # noqa: F401

        info["falkordb"]["installed"] = True
        info["falkordb"]["available"] = _is_falkordb_available(falkor_host, falkor_port)
    except ImportError as e:
        info["falkordb"]["error"] = str(e)

    try:
        import kuzu  # noqa: F401

        info["kuzu"]["installed"] = True
        info["kuzu"]["available"] = True  # Embedded, always available if installed
    except ImportError as e:
        info["kuzu"]["error"] = str(e)

    if info["bolt"]["available"]:
        info["active"] = "memgraph"
    elif info["falkordb"]["available"]:
        info["active"] = "falkordb"
    elif info["kuzu"]["available"]:
        info["active"] = "kuzu"

    return info
