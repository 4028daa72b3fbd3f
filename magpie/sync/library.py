"""Grow-only keyed set of immutable files.

A Library maps a file name to the file's bytes. Entries are only ever
added; merging two libraries keeps the existing entry for any name both
already hold, so merge is idempotent and every replica that has seen the
same set of snapshots ends up with the same key set.
"""

import logging
from typing import Any, Iterable, Iterator

logger = logging.getLogger(__name__)


class Library:
    """CRDT mapping file names to immutable content."""

    def __init__(self, files: dict[str, bytes] | None = None):
        """Initialize the library.

        Args:
            files: Initial name to content mapping. Copied, not shared.
        """
        self._files: dict[str, bytes] = {}
        for name, content in (files or {}).items():
            self.add(name, content)

    @classmethod
    def new(cls) -> "Library":
        """Create an empty library."""
        return cls()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, bytes]]) -> "Library":
        """Build a library from (name, content) pairs.

        The first pair seen for a name wins; later pairs with the same
        name are dropped.
        """
        library = cls()
        for name, content in pairs:
            if not library.add(name, content):
                logger.warning(f"Dropping duplicate entry for {name}")
        return library

    def add(self, name: str, content: bytes) -> bool:
        """Insert an entry if the name is not present yet.

        Returns:
            True if the entry was inserted, False if the name was taken.

        Raises:
            TypeError: If content is not bytes.
        """
        if name in self._files:
            return False
        if not isinstance(content, bytes):
            raise TypeError(f"content for {name} must be bytes, not {type(content).__name__}")
        self._files[name] = content
        return True

    def merge(self, other: "Library") -> list[str]:
        """Fold another replica's entries into this one.

        Names already present keep their local content.

        Args:
            other: The remote library. Left unchanged.

        Returns:
            Names inserted by this merge, sorted.
        """
        added = [name for name in sorted(other._files) if self.add(name, other._files[name])]
        if added:
            logger.debug(f"Merged {len(added)} new entries")
        return added

    def get(self, name: str, default: bytes | None = None) -> bytes | None:
        return self._files.get(name, default)

    def keys(self) -> set[str]:
        return set(self._files)

    def items(self) -> Iterator[tuple[str, bytes]]:
        """Iterate over entries in name order."""
        for name in sorted(self._files):
            yield name, self._files[name]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"files": dict(self._files)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Library":
        """Create from dictionary."""
        return cls(data["files"])

    def __contains__(self, name: object) -> bool:
        return name in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._files))

    def __len__(self) -> int:
        return len(self._files)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Library):
            return NotImplemented
        return self._files == other._files

    def __repr__(self) -> str:
        return f"Library({sorted(self._files)!r})"
