"""Error taxonomy for magpie.

Filesystem failures are not wrapped: they propagate as the built-in
``OSError`` family.
"""

import os
from typing import Optional

__all__ = [
    "MagpieError",
    "ConfigError",
    "StateNotFoundError",
    "StateDecodeError",
    "StateEncodeError",
    "FileNameEncodingError",
    "TransferError",
]


class MagpieError(Exception):
    """Base class for all magpie errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context

        full_msg = message
        if context:
            full_msg += f" ({context})"

        super().__init__(full_msg)


class ConfigError(MagpieError):
    """Missing or malformed configuration."""


class StateNotFoundError(MagpieError):
    """The durable state file does not exist."""

    def __init__(self, path):
        super().__init__(
            f"State file not found: {path}",
            "run 'magpie init' first",
        )
        self.path = path


class StateDecodeError(MagpieError):
    """Serialized state is corrupt or has an unexpected shape."""


class StateEncodeError(MagpieError):
    """The library could not be serialized."""


class FileNameEncodingError(MagpieError):
    """A file name in the working directory is not valid text."""

    def __init__(self, name: str):
        super().__init__(
            "Invalid file name",
            os.fsencode(name).decode("utf-8", "replace"),
        )
        self.name = name


class TransferError(MagpieError):
    """The transfer agent failed to move a blob."""

    def __init__(self, direction: str, detail: Optional[str] = None):
        super().__init__(f"Transfer {direction} failed", detail)
        self.direction = direction
        self.detail = detail
