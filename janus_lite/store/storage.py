"""Raw file primitives for the file-backed store.

All paths are POSIX-style and relative to the store root. Failures surface as
PersistenceError carrying the failing path; callers that must tolerate
unreadable files (reconciliation) catch it themselves.
"""

import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from janus_lite.errors import PersistenceError
from janus_lite.log_config import get_logger

log = get_logger("storage")


class FileSystemStorage:
    """Read/write/list/commit bound to one root directory."""

    def __init__(self, root: str | Path, auto_commit: bool = False):
        """Initialize storage.

        Args:
            root: Store root directory (created if missing)
            auto_commit: Commit to git after writes when root is a work tree
        """
        self.root = Path(root)
        self.auto_commit = auto_commit
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError("create", f"Failed to create data directory: {e}", path=str(self.root)) from e

    def path(self, rel: str) -> Path:
        return self.root / rel

    def exists(self, rel: str) -> bool:
        return self.path(rel).exists()

    def is_dir(self, rel: str) -> bool:
        return self.path(rel).is_dir()

    def read_text(self, rel: str) -> str:
        try:
            return self.path(rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError("read", str(e), path=rel) from e

    def write_text(self, rel: str, text: str) -> None:
        target = self.path(rel)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise PersistenceError("update", str(e), path=rel) from e
        log.trace(f"Wrote {rel} ({len(text)} chars)")

    def write_atomic(self, rel: str, text: str) -> None:
        """Write text using temp file + rename so readers never see a partial file."""
        target = self.path(rel)
        tmp_path = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, target)  # Atomic on POSIX
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError("update", str(e), path=rel) from e

    def list_dir(self, rel: str) -> list[tuple[str, bool]]:
        """List direct entries of a directory as sorted (name, is_dir) pairs."""
        directory = self.path(rel)
        try:
            entries = [(entry.name, entry.is_dir()) for entry in directory.iterdir()]
        except OSError as e:
            raise PersistenceError("read", str(e), path=rel) from e
        return sorted(entries)

    def modified_at(self, rel: str) -> datetime:
        try:
            return datetime.fromtimestamp(self.path(rel).stat().st_mtime, tz=timezone.utc)
        except OSError as e:
            raise PersistenceError("read", str(e), path=rel) from e

    def _is_git_work_tree(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--is-inside-work-tree"],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=10,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def commit(self, message: str) -> bool:
        """Stage everything under root and commit.

        Returns:
            True if a commit was created, False when disabled or nothing changed
        """
        if not self.auto_commit:
            return False
        if not self._is_git_work_tree():
            log.debug(f"Not a git work tree, skipping commit: {self.root}")
            return False

        try:
            subprocess.run(["git", "add", "-A"], cwd=self.root, capture_output=True, text=True, timeout=30, check=True)
            result = subprocess.run(
                ["git", "commit", "-m", message],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=30,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise PersistenceError("update", f"git commit failed: {e}", path=str(self.root)) from e

        if result.returncode != 0:
            if "nothing to commit" in (result.stdout + result.stderr):
                return False
            raise PersistenceError("update", f"git commit failed: {result.stderr.strip()}", path=str(self.root))

        log.info(f"Committed: {message}")
        return True
