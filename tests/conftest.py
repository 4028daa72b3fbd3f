"""Shared fixtures for magpie tests."""

from pathlib import Path

import pytest

from magpie.config import AppConfig, Config, RemoteConfig, StorageConfig, TransferConfig
from magpie.sync.transfer import TransferAgent, TransferOutcome, TransferResult

ENV_VARS = [
    "MAGPIE_APPNAME",
    "MAGPIE_CHANNEL",
    "MAGPIE_URL",
    "MAGPIE_DATA_DIR",
    "MAGPIE_CACHE_DIR",
    "MAGPIE_TRANSFER_METHOD",
    "MAGPIE_RSYNC_PATH",
    "APPNAME",
    "CHANNEL",
    "url",
]


class FakeTransfer(TransferAgent):
    """In-memory remote. Objects are keyed by remote address."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.fail_pull = False
        self.fail_push = False
        self.calls: list[tuple[str, str, str]] = []

    def pull(self, source: str, destination: Path) -> TransferResult:
        self.calls.append(("pull", source, str(destination)))
        if self.fail_pull:
            return TransferResult(TransferOutcome.FAILED, "simulated pull failure")
        if source not in self.objects:
            return TransferResult(TransferOutcome.SOURCE_ABSENT)
        Path(destination).write_bytes(self.objects[source])
        return TransferResult(TransferOutcome.TRANSFERRED)

    def push(self, source: Path, destination: str) -> TransferResult:
        self.calls.append(("push", str(source), destination))
        if self.fail_push:
            return TransferResult(TransferOutcome.FAILED, "simulated push failure")
        self.objects[destination] = Path(source).read_bytes()
        return TransferResult(TransferOutcome.TRANSFERRED)

    def _copy(self, source: str, destination: str) -> TransferResult:
        raise AssertionError("FakeTransfer overrides pull and push")


def make_config(root: Path, name: str = "replica", url: str = "remote:library.cbor") -> Config:
    """Build a config whose state, cache and library all live under root/name."""
    base = root / name
    work_dir = base / "library"
    work_dir.mkdir(parents=True, exist_ok=True)
    return Config(
        app=AppConfig(name="magpie", channel="test"),
        remote=RemoteConfig(url=url),
        storage=StorageConfig(
            data_dir=str(base / "data"),
            cache_dir=str(base / "cache"),
        ),
        transfer=TransferConfig(),
        work_dir=work_dir,
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of configuration loading."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_transfer():
    return FakeTransfer()


@pytest.fixture
def config(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def replica_config(tmp_path):
    """Factory for configs of independent replicas under one tmp_path."""

    def factory(name: str) -> Config:
        return make_config(tmp_path, name)

    return factory
