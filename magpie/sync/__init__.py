"""Sync infrastructure for magpie libraries.

Provides a grow-only CRDT of immutable files, the engine that reconciles it
with a working directory, and the sync cycle that exchanges it with a remote.
"""

from .files import capture, materialize
from .library import Library
from .syncer import Syncer, SyncResult, SyncStage
from .transfer import (
    CopyTransfer,
    RsyncTransfer,
    TransferAgent,
    TransferOutcome,
    TransferResult,
    create_transfer,
)

__all__ = [
    "Library",
    "capture",
    "materialize",
    "Syncer",
    "SyncResult",
    "SyncStage",
    "TransferAgent",
    "TransferOutcome",
    "TransferResult",
    "RsyncTransfer",
    "CopyTransfer",
    "create_transfer",
]
