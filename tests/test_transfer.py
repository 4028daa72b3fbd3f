"""Tests for transfer agents."""

from unittest.mock import MagicMock, patch

import pytest

from magpie.config import TransferConfig
from magpie.errors import ConfigError
from magpie.sync.transfer import (
    CopyTransfer,
    RsyncTransfer,
    TransferOutcome,
    create_transfer,
)


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestRsyncTransfer:
    """Tests for the rsync-backed agent."""

    def test_build_command(self):
        """Test the default rsync command line."""
        agent = RsyncTransfer()

        cmd = agent.build_command("host:lib.cbor", "/tmp/remote.cbor")

        assert cmd == [
            "rsync",
            "--compress",
            "--verbose",
            "--ignore-missing-args",
            "host:lib.cbor",
            "/tmp/remote.cbor",
        ]

    def test_custom_binary_and_args(self):
        """Test a custom rsync binary and arguments."""
        agent = RsyncTransfer("/opt/bin/rsync", ["-e", "ssh -p 2222"])

        cmd = agent.build_command("a", "b")

        assert cmd[0] == "/opt/bin/rsync"
        assert cmd[1:3] == ["-e", "ssh -p 2222"]

    def test_pull_transferred(self, tmp_path):
        """Test a pull that produces the destination file."""
        dest = tmp_path / "remote.cbor"

        def fake_run(cmd, **kwargs):
            dest.write_bytes(b"data")
            return completed()

        with patch("magpie.sync.transfer.subprocess.run", side_effect=fake_run) as mock_run:
            result = RsyncTransfer().pull("host:lib.cbor", dest)

        assert result.outcome == TransferOutcome.TRANSFERRED
        assert mock_run.call_args.args[0][-2:] == ["host:lib.cbor", str(dest)]

    def test_pull_remote_missing(self, tmp_path):
        """Test a pull of a missing remote object."""
        with patch("magpie.sync.transfer.subprocess.run", return_value=completed()):
            result = RsyncTransfer().pull("host:lib.cbor", tmp_path / "remote.cbor")

        assert result.outcome == TransferOutcome.SOURCE_ABSENT
        assert result.ok

    def test_pull_nonzero_exit(self, tmp_path):
        """Test a pull where rsync exits non-zero."""
        with patch(
            "magpie.sync.transfer.subprocess.run",
            return_value=completed(returncode=12, stderr="connection unexpectedly closed"),
        ):
            result = RsyncTransfer().pull("host:lib.cbor", tmp_path / "remote.cbor")

        assert result.outcome == TransferOutcome.FAILED
        assert not result.ok
        assert "12" in result.detail
        assert "connection unexpectedly closed" in result.detail

    def test_missing_binary(self, tmp_path):
        """Test a missing rsync binary is a failed transfer."""
        with patch(
            "magpie.sync.transfer.subprocess.run",
            side_effect=FileNotFoundError("rsync"),
        ):
            result = RsyncTransfer().pull("host:lib.cbor", tmp_path / "remote.cbor")

        assert result.outcome == TransferOutcome.FAILED

    def test_push(self, tmp_path):
        """Test pushing the local cache."""
        source = tmp_path / "remote.cbor"
        source.write_bytes(b"data")

        with patch("magpie.sync.transfer.subprocess.run", return_value=completed()) as mock_run:
            result = RsyncTransfer().push(source, "host:lib.cbor")

        assert result.outcome == TransferOutcome.TRANSFERRED
        assert mock_run.call_args.args[0][-2:] == [str(source), "host:lib.cbor"]

    def test_push_missing_local_file(self, tmp_path):
        """Test pushing a local file that does not exist."""
        with patch("magpie.sync.transfer.subprocess.run") as mock_run:
            result = RsyncTransfer().push(tmp_path / "missing.cbor", "host:lib.cbor")

        assert result.outcome == TransferOutcome.SOURCE_ABSENT
        mock_run.assert_not_called()


class TestCopyTransfer:
    """Tests for the mounted-filesystem agent."""

    def test_pull_and_push(self, tmp_path):
        """Test copying state to and from a mounted remote."""
        remote = tmp_path / "share" / "library.cbor"
        local = tmp_path / "cache" / "remote.cbor"
        local.parent.mkdir()
        local.write_bytes(b"state")
        agent = CopyTransfer()

        assert agent.push(local, str(remote)).outcome == TransferOutcome.TRANSFERRED
        assert remote.read_bytes() == b"state"

        local.unlink()
        assert agent.pull(str(remote), local).outcome == TransferOutcome.TRANSFERRED
        assert local.read_bytes() == b"state"

    def test_pull_missing_remote(self, tmp_path):
        """Test pulling a remote file that does not exist."""
        result = CopyTransfer().pull(str(tmp_path / "nothing.cbor"), tmp_path / "remote.cbor")

        assert result.outcome == TransferOutcome.SOURCE_ABSENT
        assert not (tmp_path / "remote.cbor").exists()

    def test_file_url(self, tmp_path):
        """Test a file:// remote URL."""
        remote = tmp_path / "library.cbor"
        remote.write_bytes(b"state")
        local = tmp_path / "remote.cbor"

        result = CopyTransfer().pull(f"file://{remote}", local)

        assert result.outcome == TransferOutcome.TRANSFERRED
        assert local.read_bytes() == b"state"

    def test_copy_error_is_failure(self, tmp_path):
        """Test a copy error is a failed transfer."""
        local = tmp_path / "remote.cbor"
        local.write_bytes(b"state")
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")

        result = CopyTransfer().push(local, str(blocker / "library.cbor"))

        assert result.outcome == TransferOutcome.FAILED


class TestCreateTransfer:
    """Tests for agent selection."""

    def test_rsync(self):
        """Test selecting the rsync agent."""
        agent = create_transfer(TransferConfig(method="rsync", rsync_path="/usr/bin/rsync"))

        assert isinstance(agent, RsyncTransfer)
        assert agent.rsync_path == "/usr/bin/rsync"

    def test_copy(self):
        """Test selecting the copy agent."""
        assert isinstance(create_transfer(TransferConfig(method="copy")), CopyTransfer)

    def test_from_full_config(self, config):
        """Test selecting an agent from a full Config."""
        assert isinstance(create_transfer(config), RsyncTransfer)

    def test_unknown_method(self):
        """Test an unknown transfer method raises ConfigError."""
        with pytest.raises(ConfigError):
            create_transfer(TransferConfig(method="ftp"))
