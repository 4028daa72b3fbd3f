"""Transfer agents moving a single state blob to and from the remote.

The remote object may not exist yet (no replica has published), which
agents report as SOURCE_ABSENT rather than as a failure.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config import Config, TransferConfig
from ..errors import ConfigError

logger = logging.getLogger(__name__)


class TransferOutcome(Enum):
    """Outcome of a single transfer."""

    TRANSFERRED = "transferred"
    SOURCE_ABSENT = "source_absent"
    FAILED = "failed"


@dataclass
class TransferResult:
    """Result of a transfer operation."""

    outcome: TransferOutcome
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome != TransferOutcome.FAILED


class TransferAgent(ABC):
    """Moves one opaque blob between a local path and a remote address."""

    def pull(self, source: str, destination: Path) -> TransferResult:
        """Copy the remote object at source to the local destination."""
        logger.debug(f"beginning pull {source} -> {destination}")
        result = self._copy(source, str(destination))
        if result.ok and not Path(destination).is_file():
            result = TransferResult(TransferOutcome.SOURCE_ABSENT, result.detail)
        logger.debug(f"pull {destination} complete: {result.outcome.value}")
        return result

    def push(self, source: Path, destination: str) -> TransferResult:
        """Copy the local file at source to the remote destination."""
        if not Path(source).is_file():
            return TransferResult(TransferOutcome.SOURCE_ABSENT, f"{source} does not exist")
        logger.debug(f"beginning push {source} -> {destination}")
        result = self._copy(str(source), destination)
        logger.debug(f"push {source} complete: {result.outcome.value}")
        return result

    @abstractmethod
    def _copy(self, source: str, destination: str) -> TransferResult:
        """Mirror source to destination.

        A missing source must not be reported as FAILED.
        """
        pass


class RsyncTransfer(TransferAgent):
    """Transfer agent backed by the rsync command line tool."""

    def __init__(
        self,
        rsync_path: str = "rsync",
        extra_args: list[str] | None = None,
    ):
        """Initialize the rsync agent.

        Args:
            rsync_path: rsync executable name or path.
            extra_args: Arguments placed before the source and destination.
        """
        self.rsync_path = rsync_path
        self.extra_args = (
            list(extra_args) if extra_args is not None else ["--compress", "--verbose"]
        )

    def build_command(self, source: str, destination: str) -> list[str]:
        return [
            self.rsync_path,
            *self.extra_args,
            "--ignore-missing-args",
            source,
            destination,
        ]

    def _copy(self, source: str, destination: str) -> TransferResult:
        cmd = self.build_command(source, destination)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            return TransferResult(TransferOutcome.FAILED, f"could not run {self.rsync_path}: {e}")

        for line in result.stdout.splitlines():
            logger.debug(f"rsync: {line}")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            detail = f"rsync exited with status {result.returncode}"
            if stderr:
                detail += f": {stderr}"
            return TransferResult(TransferOutcome.FAILED, detail)

        return TransferResult(TransferOutcome.TRANSFERRED)


class CopyTransfer(TransferAgent):
    """Transfer agent for a remote that is a path on a mounted filesystem."""

    @staticmethod
    def _local_path(address: str) -> Path:
        if address.startswith("file://"):
            address = address[len("file://"):]
        return Path(address).expanduser()

    def _copy(self, source: str, destination: str) -> TransferResult:
        src = self._local_path(source)
        dst = self._local_path(destination)

        if not src.is_file():
            return TransferResult(TransferOutcome.SOURCE_ABSENT, f"{src} does not exist")

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dst)
        except OSError as e:
            return TransferResult(TransferOutcome.FAILED, str(e))

        return TransferResult(TransferOutcome.TRANSFERRED)


def create_transfer(config: Config | TransferConfig) -> TransferAgent:
    """Build the transfer agent selected by configuration.

    Raises:
        ConfigError: If the transfer method is unknown.
    """
    transfer = config.transfer if isinstance(config, Config) else config

    if transfer.method == "rsync":
        return RsyncTransfer(transfer.rsync_path, transfer.rsync_args)
    if transfer.method == "copy":
        return CopyTransfer()

    raise ConfigError("Unknown transfer method", transfer.method)
