"""
Storage module for DocDrift.

This module provides the append-only snapshot store and the JSON
serialization of snapshots and drift results.
"""

from docdrift.storage.serialization import (
    FORMAT_VERSION,
    result_to_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    to_plain,
)
from docdrift.storage.snapshot_store import (
    FileSnapshotStore,
    SnapshotStore,
    StoredSnapshot,
    snapshot_filename,
)

__all__ = [
    "FORMAT_VERSION",
    "FileSnapshotStore",
    "SnapshotStore",
    "StoredSnapshot",
    "result_to_dict",
    "snapshot_filename",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "to_plain",
]
