"""Reconcile a Library with the files in a working directory.

Capture folds new local files into the library; materialize writes out
library entries that have no local file yet. Both mark the files they
touch read-only. Neither is transactional: on error, work already done
stays done, and a rerun picks up where the failed one stopped.
"""

import logging
import os
import stat
from pathlib import Path

from ..errors import FileNameEncodingError
from .library import Library

logger = logging.getLogger(__name__)

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def set_readonly(path: Path) -> None:
    """Clear every write permission bit on a file."""
    mode = path.stat().st_mode
    path.chmod(stat.S_IMODE(mode) & ~_WRITE_BITS)


def is_safe_name(name: str) -> bool:
    """Whether a library key can be used as a file name in the working directory."""
    if name in ("", ".", ".."):
        return False
    if "\0" in name or "/" in name:
        return False
    if os.altsep and os.altsep in name:
        return False
    return os.sep not in name


def list_files(work_dir: Path) -> set[str]:
    """Names of the plain files directly inside work_dir.

    Directories, symlinks and special files are ignored.

    Raises:
        FileNameEncodingError: If a file name is not valid UTF-8.
    """
    names = set()
    with os.scandir(work_dir) as entries:
        for entry in entries:
            if not entry.is_file(follow_symlinks=False):
                continue
            try:
                entry.name.encode("utf-8")
            except UnicodeEncodeError as e:
                raise FileNameEncodingError(entry.name) from e
            names.add(entry.name)
    return names


def capture(library: Library, work_dir: str | Path) -> list[str]:
    """Add files from work_dir that the library does not know yet.

    Args:
        library: Local library, updated in place.
        work_dir: Directory holding the tracked files.

    Returns:
        Names captured, sorted.
    """
    work_dir = Path(work_dir)
    new_names = sorted(list_files(work_dir) - library.keys())

    for name in new_names:
        path = work_dir / name
        content = path.read_bytes()
        logger.info(f"adding {name}")
        library.add(name, content)
        set_readonly(path)

    return new_names


def materialize(library: Library, work_dir: str | Path) -> list[str]:
    """Write library entries that are missing from work_dir.

    Existing paths are never touched, whatever their content.

    Args:
        library: Library to write out.
        work_dir: Directory holding the tracked files.

    Returns:
        Names written, sorted.
    """
    work_dir = Path(work_dir)
    written = []

    for name, content in library.items():
        if not is_safe_name(name):
            logger.warning(f"Not unpacking {name!r}: not a plain file name")
            continue

        path = work_dir / name
        if path.exists() or path.is_symlink():
            continue

        logger.info(f"unpacking {name}")
        with open(path, "xb") as f:
            f.write(content)
        set_readonly(path)
        written.append(name)

    return written
