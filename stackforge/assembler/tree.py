"""Virtual project tree.

The in-memory, order-preserving aggregate of every ``LogicalFile`` produced
during one run. Files are keyed by ``(directory, file_name)``; adding a file
whose key already exists replaces the earlier one in place (last write wins)
and records a ``FileCollision``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from typing import Any

from stackforge.models import FileCollision, LogicalFile


class VirtualProjectTree:
    """Ordered collection of logical files with unique paths."""

    def __init__(self, files: Iterable[LogicalFile] = ()) -> None:
        self._files: dict[tuple[str, str], LogicalFile] = {}
        self.collisions: list[FileCollision] = []
        self.extend(files)

    # -- Mutation ----------------------------------------------------------

    def add(self, file: LogicalFile) -> FileCollision | None:
        """Add *file*; return the collision record if it replaced another file."""
        previous = self._files.get(file.key)
        self._files[file.key] = file
        if previous is None:
            return None
        collision = FileCollision(
            directory=file.directory,
            file_name=file.file_name,
            previous_stage=previous.source_stage,
            winning_stage=file.source_stage,
        )
        self.collisions.append(collision)
        return collision

    def extend(self, files: Iterable[LogicalFile]) -> list[FileCollision]:
        """Add every file in order; return the collisions this caused."""
        found: list[FileCollision] = []
        for f in files:
            collision = self.add(f)
            if collision is not None:
                found.append(collision)
        return found

    # -- Access ------------------------------------------------------------

    def files(self) -> list[LogicalFile]:
        return list(self._files.values())

    def snapshot(self) -> tuple[LogicalFile, ...]:
        """Read-only view handed to report-only stages."""
        return tuple(self._files.values())

    def get(self, path: str) -> LogicalFile | None:
        directory, _, file_name = path.strip("/").rpartition("/")
        return self._files.get((directory, file_name))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.get(path) is not None

    def __iter__(self) -> Iterator[LogicalFile]:
        return iter(list(self._files.values()))

    def __len__(self) -> int:
        return len(self._files)

    # -- Reporting ---------------------------------------------------------

    def files_by_type(self) -> dict[str, int]:
        counts = Counter(f.file_type.value for f in self._files.values())
        return dict(sorted(counts.items()))


def build_structure(files: Iterable[LogicalFile]) -> dict[str, Any]:
    """Fold a flat file list into nested directory dictionaries."""
    structure: dict[str, Any] = {}
    for f in files:
        current = structure
        for part in (f.directory.split("/") if f.directory else []):
            current = current.setdefault(part, {})
        current[f.file_name] = {"type": f.file_type.value, "size": len(f.content)}
    return structure
