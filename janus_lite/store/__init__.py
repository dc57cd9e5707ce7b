"""File/git-backed content store.

Module Structure:
- storage.py: raw read/write/list/commit primitives bound to a root directory
- file_index.py: the .janus/indexes.json document and its reconciliation
- file_persistence.py: FilePersistence, the ContentStore implementation

Layout on disk:
    content/nodes/<name>.md          single-file node
    content/nodes/<name>/*.md        directory (concatenate) node
    content/inserts/inserts.yaml     insert definitions
    .janus/indexes.json              derived index
"""

from janus_lite.store.file_index import FileIndex, IndexDocument
from janus_lite.store.file_persistence import FilePersistence
from janus_lite.store.storage import FileSystemStorage

__all__ = [
    "FileIndex",
    "FilePersistence",
    "FileSystemStorage",
    "IndexDocument",
]
