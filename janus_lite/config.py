"""Configuration for Janus Lite.

Simple dataclass-based configuration with sensible defaults.
Override via environment variables with JANUS_LITE_ prefix.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from janus_lite.errors import ValidationError
from janus_lite.log_config import get_logger

log = get_logger("config")

# Look for .env in the package parent (repo checkout) directory
_pkg_dir = Path(__file__).parent.parent
_env_loaded = load_dotenv(_pkg_dir / ".env")
log.trace(f"Loaded .env file: {_env_loaded}")

STORE_KINDS = ("file", "graph")
GRAPH_BACKENDS = ("auto", "memgraph", "neo4j", "falkordb", "kuzu")


def _get_env(key: str, default: str) -> str:
    """Get environment variable with JANUS_LITE_ prefix."""
    return os.getenv(f"JANUS_LITE_{key}", default)


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean environment variable."""
    val = os.getenv(f"JANUS_LITE_{key}")
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _get_env_float(key: str) -> float | None:
    val = os.getenv(f"JANUS_LITE_{key}")
    if not val:
        return None
    try:
        return float(val)
    except ValueError as e:
        raise ValidationError(f"JANUS_LITE_{key} must be a number, got {val!r}", field=key.lower()) from e


@dataclass
class Config:
    """Janus Lite configuration.

    Attributes:
        store: Persistence backend, "file" or "graph" (default: file)
        data_path: Root of the file-backed store (default: current directory)
        auto_commit: Commit file-store writes to git (default: False)
        graph_backend: auto, memgraph, neo4j, falkordb or kuzu (default: auto)
        resolve_timeout: Seconds a render may take before it is abandoned
    """

    store: str = field(default_factory=lambda: _get_env("STORE", "file").lower())
    data_path: Path = field(default_factory=lambda: Path(_get_env("DATA_PATH", ".")))
    auto_commit: bool = field(default_factory=lambda: _get_env_bool("AUTO_COMMIT", False))

    graph_backend: str = field(default_factory=lambda: _get_env("GRAPH_BACKEND", "auto").lower())

    # Bolt (Memgraph / Neo4j) connection settings
    bolt_host: str = field(default_factory=lambda: _get_env("BOLT_HOST", "localhost"))
    bolt_port: int = field(default_factory=lambda: int(_get_env("BOLT_PORT", "7687")))
    bolt_username: str = field(default_factory=lambda: _get_env("BOLT_USERNAME", ""))
    bolt_password: str = field(default_factory=lambda: _get_env("BOLT_PASSWORD", ""))

    # FalkorDB connection settings
    falkor_host: str = field(default_factory=lambda: _get_env("FALKOR_HOST", "localhost"))
    falkor_port: int = field(default_factory=lambda: int(_get_env("FALKOR_PORT", "6379")))
    falkor_password: str = field(default_factory=lambda: _get_env("FALKOR_PASSWORD", ""))

    kuzu_path: Path = field(
        default_factory=lambda: Path(_get_env("KUZU_PATH", str(Path.home() / ".janus_lite" / "kuzu")))
    )

    resolve_timeout: float | None = field(default_factory=lambda: _get_env_float("RESOLVE_TIMEOUT"))

    def __post_init__(self):
        """Normalize paths and reject unknown backend names."""
        log.trace("Initializing Config")

        self.data_path = Path(self.data_path).expanduser()
        self.kuzu_path = Path(self.kuzu_path).expanduser()

        if self.store not in STORE_KINDS:
            raise ValidationError(f"store must be one of {', '.join(STORE_KINDS)}, got {self.store!r}", field="store")
        if self.graph_backend not in GRAPH_BACKENDS:
            raise ValidationError(
                f"graph_backend must be one of {', '.join(GRAPH_BACKENDS)}, got {self.graph_backend!r}",
                field="graph_backend",
            )
        if self.resolve_timeout is not None and self.resolve_timeout <= 0:
            raise ValidationError("resolve_timeout must be positive", field="resolve_timeout")

        log.debug(f"store={self.store}, data_path={self.data_path}, auto_commit={self.auto_commit}")
        log.debug(f"graph_backend={self.graph_backend}, kuzu_path={self.kuzu_path}")
        log.debug(f"bolt={self.bolt_host}:{self.bolt_port} (auth={'yes' if self.bolt_password else 'no'})")
        log.debug(f"falkor={self.falkor_host}:{self.falkor_port} (auth={'yes' if self.falkor_password else 'no'})")
        log.debug(f"resolve_timeout={self.resolve_timeout}")
