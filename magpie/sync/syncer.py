"""Sync lifecycle for one library replica.

A sync cycle is a straight line: load, capture, pull, merge,
materialize, persist, push. The first error aborts the rest of the
cycle. Nothing is rolled back; capture, merge and materialize are all
idempotent, so the next successful run converges.
"""

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..config import Config
from ..errors import TransferError
from . import codec
from .files import capture, list_files, materialize
from .library import Library
from .transfer import TransferAgent, TransferOutcome, create_transfer

logger = logging.getLogger(__name__)


class SyncStage(Enum):
    """Stages of a sync cycle, in execution order."""

    INIT = "init"
    LOADED = "loaded"
    CAPTURED = "captured"
    PULLED = "pulled"
    MERGED = "merged"
    MATERIALIZED = "materialized"
    PERSISTED = "persisted"
    PUSHED = "pushed"
    DONE = "done"


@dataclass
class SyncResult:
    """Result of a sync cycle."""

    captured: list[str] = field(default_factory=list)
    merged: list[str] = field(default_factory=list)
    materialized: list[str] = field(default_factory=list)
    pull_outcome: TransferOutcome | None = None
    total_entries: int = 0


class Syncer:
    """Runs init and sync against one configured replica."""

    def __init__(self, config: Config, transfer: TransferAgent | None = None):
        """Initialize the syncer.

        Args:
            config: Loaded configuration.
            transfer: Transfer agent. Built from config when None.
        """
        self.config = config
        self.transfer = transfer if transfer is not None else create_transfer(config)
        self.stage = SyncStage.INIT

    def _advance(self, stage: SyncStage) -> None:
        self.stage = stage
        logger.debug(f"stage {stage.value}")

    def init(self) -> bool:
        """Make sure the durable state file exists.

        Returns:
            True if a new empty state file was written.
        """
        state_path = self.config.state_path
        if state_path.is_file():
            logger.debug(f"{state_path} already exists")
            return False

        state_path.parent.mkdir(parents=True, exist_ok=True)
        codec.dump(Library.new(), state_path)
        logger.info(f"Created empty library at {state_path}")
        return True

    def sync(self) -> SyncResult:
        """Run one full sync cycle.

        Raises:
            StateNotFoundError: If init has not been run.
            StateDecodeError: If local or remote state is corrupt.
            FileNameEncodingError: If a local file name is not valid text.
            TransferError: If pulling or pushing failed.
            OSError: On filesystem failures.
        """
        config = self.config
        result = SyncResult()
        self.stage = SyncStage.INIT

        logger.debug("loading local serialization")
        local = codec.load(config.state_path)
        self._advance(SyncStage.LOADED)

        result.captured = capture(local, config.work_dir)
        self._advance(SyncStage.CAPTURED)

        cache_path = config.place_remote_cache()
        pulled = self.transfer.pull(config.remote.url, cache_path)
        if pulled.outcome == TransferOutcome.FAILED:
            raise TransferError("pull", pulled.detail)
        result.pull_outcome = pulled.outcome
        self._advance(SyncStage.PULLED)

        # The remote side may not exist yet, in which case there is
        # nothing to merge.
        if pulled.outcome == TransferOutcome.TRANSFERRED and cache_path.is_file():
            logger.debug("merging remote")
            remote = codec.load(cache_path)
            result.merged = local.merge(remote)
        self._advance(SyncStage.MERGED)

        result.materialized = materialize(local, config.work_dir)
        self._advance(SyncStage.MATERIALIZED)

        logger.debug("re-serializing library")
        codec.dump(local, config.state_path)
        shutil.copyfile(config.state_path, cache_path)
        self._advance(SyncStage.PERSISTED)

        pushed = self.transfer.push(cache_path, config.remote.url)
        if pushed.outcome != TransferOutcome.TRANSFERRED:
            raise TransferError("push", pushed.detail)
        self._advance(SyncStage.PUSHED)

        result.total_entries = len(local)
        self._advance(SyncStage.DONE)

        logger.info(
            f"Sync complete: captured={len(result.captured)}, "
            f"merged={len(result.merged)}, "
            f"materialized={len(result.materialized)}, "
            f"total={result.total_entries}"
        )
        return result

    def status(self) -> dict[str, Any]:
        """Report on the local replica without transferring anything.

        Returns:
            Dictionary with paths, entry count and per-file residency.
        """
        config = self.config
        local = codec.load(config.state_path)
        on_disk = list_files(Path(config.work_dir))

        tracked = sorted(name for name in local if name in on_disk)
        pending = sorted(name for name in local if name not in on_disk)
        untracked = sorted(on_disk - local.keys())

        return {
            "state_path": str(config.state_path),
            "remote_cache_path": str(config.remote_cache_path),
            "remote_url": config.remote.url,
            "work_dir": str(config.work_dir),
            "total_entries": len(local),
            "tracked": tracked,
            "pending_materialize": pending,
            "local_only": untracked,
        }
