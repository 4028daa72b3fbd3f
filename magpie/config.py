"""Configuration loading for magpie."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

STATE_FILE = "local.cbor"
REMOTE_CACHE_FILE = "remote.cbor"

TRANSFER_METHODS = ("rsync", "copy")


@dataclass
class AppConfig:
    name: str = ""
    channel: str = ""


@dataclass
class RemoteConfig:
    url: str = ""


@dataclass
class StorageConfig:
    """Roots for the durable state and the remote staging copy."""

    data_dir: str = ""  # empty: $XDG_DATA_HOME or ~/.local/share
    cache_dir: str = ""  # empty: $XDG_CACHE_HOME or ~/.cache


@dataclass
class TransferConfig:
    method: str = "rsync"  # "rsync" or "copy"
    rsync_path: str = "rsync"
    rsync_args: list[str] = field(default_factory=lambda: ["--compress", "--verbose"])


@dataclass
class Config:
    app: AppConfig = field(default_factory=AppConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    work_dir: Path = field(default_factory=Path.cwd)

    @property
    def profile_data_dir(self) -> Path:
        root = Path(self.storage.data_dir or _xdg_home("XDG_DATA_HOME", ".local/share"))
        return root.expanduser() / self.app.name / self.app.channel

    @property
    def profile_cache_dir(self) -> Path:
        root = Path(self.storage.cache_dir or _xdg_home("XDG_CACHE_HOME", ".cache"))
        return root.expanduser() / self.app.name / self.app.channel

    @property
    def state_path(self) -> Path:
        """Durable local state file."""
        return self.profile_data_dir / STATE_FILE

    @property
    def remote_cache_path(self) -> Path:
        """Local staging copy of the remote state."""
        return self.profile_cache_dir / REMOTE_CACHE_FILE

    def place_remote_cache(self) -> Path:
        """Return the remote cache path, creating its directory if needed."""
        path = self.remote_cache_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


def _xdg_home(var: str, fallback: str) -> str:
    value = os.environ.get(var)
    # XDG spec: relative paths are invalid and must be ignored
    if value and os.path.isabs(value):
        return value
    return str(Path.home() / fallback)


def _get_env(key: str, legacy: str | None = None, default: Any = None) -> Any:
    """Get environment variable with MAGPIE_ prefix, then its unprefixed name."""
    value = os.environ.get(f"MAGPIE_{key}")
    if value is None and legacy:
        value = os.environ.get(legacy)
    return default if value is None else value


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if name := _get_env("APPNAME", "APPNAME"):
        config.app.name = name
    if channel := _get_env("CHANNEL", "CHANNEL"):
        config.app.channel = channel
    if url := _get_env("URL", "url"):
        config.remote.url = url

    if data_dir := _get_env("DATA_DIR"):
        config.storage.data_dir = data_dir
    if cache_dir := _get_env("CACHE_DIR"):
        config.storage.cache_dir = cache_dir

    if method := _get_env("TRANSFER_METHOD"):
        config.transfer.method = method
    if rsync_path := _get_env("RSYNC_PATH"):
        config.transfer.rsync_path = rsync_path

    return config


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return value


def _text(section: dict, key: str, default: str) -> str:
    value = section.get(key)
    return default if value is None else str(value)


def _validate(config: Config) -> None:
    missing = []
    if not config.app.name:
        missing.append("app.name (MAGPIE_APPNAME)")
    if not config.app.channel:
        missing.append("app.channel (MAGPIE_CHANNEL)")
    if not config.remote.url:
        missing.append("remote.url (MAGPIE_URL)")
    if missing:
        raise ConfigError("Missing required settings", ", ".join(missing))

    for part in (config.app.name, config.app.channel):
        if part in (".", "..") or "/" in part or os.sep in part:
            raise ConfigError("Application name and channel must be plain names", part)

    method = config.transfer.method
    if not isinstance(method, str) or method not in TRANSFER_METHODS:
        raise ConfigError("Unknown transfer method", repr(method))

    if not isinstance(config.transfer.rsync_path, str) or not config.transfer.rsync_path:
        raise ConfigError(
            "transfer.rsync_path must be a non-empty string", repr(config.transfer.rsync_path)
        )

    if not isinstance(config.transfer.rsync_args, list) or not all(
        isinstance(arg, str) for arg in config.transfer.rsync_args
    ):
        raise ConfigError("transfer.rsync_args must be a list of strings")


def load_config(
    config_path: str | Path | None = None,
    work_dir: str | Path | None = None,
) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, only the environment
            is used.
        work_dir: Directory holding the tracked files. Defaults to the
            current directory.

    Returns:
        Loaded and validated Config object.

    Raises:
        ConfigError: If the file is unreadable or malformed, or a required
            setting is missing.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Could not read config file {path}", str(e)) from e

            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")

            # Parse app config
            if "app" in data:
                app_data = _section(data, "app")
                config.app = AppConfig(
                    name=_text(app_data, "name", config.app.name),
                    channel=_text(app_data, "channel", config.app.channel),
                )

            # Parse remote config
            if "remote" in data:
                remote_data = _section(data, "remote")
                config.remote = RemoteConfig(
                    url=_text(remote_data, "url", config.remote.url),
                )

            # Parse storage config
            if "storage" in data:
                storage_data = _section(data, "storage")
                config.storage = StorageConfig(
                    data_dir=str(storage_data.get("data_dir") or config.storage.data_dir),
                    cache_dir=str(storage_data.get("cache_dir") or config.storage.cache_dir),
                )

            # Parse transfer config
            if "transfer" in data:
                transfer_data = _section(data, "transfer")
                config.transfer = TransferConfig(
                    method=transfer_data.get("method", config.transfer.method),
                    rsync_path=transfer_data.get(
                        "rsync_path", config.transfer.rsync_path
                    ),
                    rsync_args=transfer_data.get(
                        "rsync_args", config.transfer.rsync_args
                    ),
                )
        else:
            raise ConfigError(f"Config file not found: {path}")

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    if work_dir is not None:
        config.work_dir = Path(work_dir)

    _validate(config)

    return config
