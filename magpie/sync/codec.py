"""CBOR serialization of a Library.

Current layout is a map ``{"files": {name: bytes}}``. The older
``{"set": [[name, bytes], ...]}`` layout is still readable and is folded
first-wins by name.
"""

import logging
from pathlib import Path
from typing import Any

import cbor2

from ..errors import StateDecodeError, StateEncodeError, StateNotFoundError
from .library import Library

logger = logging.getLogger(__name__)


def encode(library: Library) -> bytes:
    """Serialize a library to CBOR bytes."""
    try:
        return cbor2.dumps(library.to_dict())
    except cbor2.CBOREncodeError as e:
        raise StateEncodeError("Could not encode library", str(e)) from e


def _check_entry(name: Any, content: Any) -> None:
    if not isinstance(name, str):
        raise StateDecodeError("Entry name is not text", repr(name))
    if not isinstance(content, bytes):
        raise StateDecodeError("Entry content is not a byte string", name)


def _legacy_content(name: Any, content: Any) -> Any:
    # Older state files hold content as an array of byte values
    if isinstance(content, list):
        if not all(type(b) is int and 0 <= b <= 255 for b in content):
            raise StateDecodeError("Entry content is not an array of byte values", name)
        return bytes(content)
    return content


def decode(data: bytes) -> Library:
    """Deserialize a library from CBOR bytes.

    Raises:
        StateDecodeError: If the bytes are not CBOR or not a library.
    """
    try:
        obj = cbor2.loads(data)
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise StateDecodeError("Corrupt state data", str(e)) from e

    if not isinstance(obj, dict):
        raise StateDecodeError("State is not a map", type(obj).__name__)

    if "files" in obj:
        files = obj["files"]
        if not isinstance(files, dict):
            raise StateDecodeError("'files' is not a map")
        for name, content in files.items():
            _check_entry(name, content)
        return Library.from_dict(obj)

    if "set" in obj:
        pairs = obj["set"]
        if not isinstance(pairs, list):
            raise StateDecodeError("'set' is not an array")
        entries = []
        for pair in pairs:
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                raise StateDecodeError("'set' element is not a pair", repr(pair))
            name, content = pair[0], _legacy_content(*pair)
            _check_entry(name, content)
            entries.append((name, content))
        logger.debug(f"Reading legacy set layout with {len(pairs)} pairs")
        return Library.from_pairs(entries)

    raise StateDecodeError("State has neither 'files' nor 'set'")


def load(path: str | Path) -> Library:
    """Read a library from a state file.

    Raises:
        StateNotFoundError: If the file does not exist.
        StateDecodeError: If the file is corrupt.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise StateNotFoundError(path) from e
    try:
        return decode(data)
    except StateDecodeError as e:
        context = f"{path}: {e.context}" if e.context else str(path)
        raise StateDecodeError(e.message, context) from e


def dump(library: Library, path: str | Path) -> bytes:
    """Write a library to a state file.

    Returns:
        The bytes written.
    """
    data = encode(library)
    Path(path).write_bytes(data)
    return data
