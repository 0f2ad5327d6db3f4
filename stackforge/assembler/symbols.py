"""Symbol table: logical name -> resolved tree path.

Built once per run, after every stage has finished and the static
configuration files have been appended. For each module file three keys are
registered, all pointing at the file's extensionless path:

* the literal file name (``TaskService.ts``)
* the case-folded base name (``taskservice``)
* the separator-normalized base name (``task-service`` -> ``taskservice``)

Re-registering a key for a different path is last-write-wins: files added
later in the run are the more specific ones.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from stackforge.config import AssemblerConfig
from stackforge.models import LogicalFile, SymbolCollision, SymbolTableEntry

_SEPARATORS = re.compile(r"[\s\-_.]+")


def separator_normalized(name: str) -> str:
    """Case-fold *name* and drop ``-``, ``_``, ``.`` and whitespace."""
    return _SEPARATORS.sub("", name.casefold())


class SymbolTable:
    """Mapping of every plausible spelling of a file name to its path."""

    def __init__(self, config: AssemblerConfig | None = None) -> None:
        self.config = config or AssemblerConfig()
        self._entries: dict[str, str] = {}
        self.collisions: list[SymbolCollision] = []

    @classmethod
    def build(
        cls, files: Iterable[LogicalFile], config: AssemblerConfig | None = None
    ) -> "SymbolTable":
        table = cls(config)
        for f in files:
            table.add_file(f)
        return table

    # -- Registration ------------------------------------------------------

    def register(self, key: str, resolved_path: str) -> SymbolCollision | None:
        if not key:
            return None
        previous = self._entries.get(key)
        self._entries[key] = resolved_path
        if previous is None or previous == resolved_path:
            return None
        collision = SymbolCollision(key=key, previous_path=previous, winning_path=resolved_path)
        self.collisions.append(collision)
        return collision

    def add_file(self, file: LogicalFile) -> None:
        """Register the three keys of *file* if it is a module file."""
        if not self.config.is_module(file.file_name):
            return
        base = self.config.strip_module_extension(file.file_name)
        resolved = f"{file.directory}/{base}" if file.directory else base
        for key in (file.file_name, base.casefold(), separator_normalized(base)):
            self.register(key, resolved)

    # -- Lookup ------------------------------------------------------------

    def lookup(self, reference: str) -> str | None:
        """Resolve an import path by its last segment.

        Tries the literal name, then the case-folded base name, then the
        separator-normalized base name.
        """
        last = re.split(r"[/\\]", reference.rstrip("/\\"))[-1]
        if not last:
            return None
        base = self.config.strip_module_extension(last)
        for key in (last, base.casefold(), separator_normalized(base)):
            found = self._entries.get(key)
            if found is not None:
                return found
        return None

    def entries(self) -> list[SymbolTableEntry]:
        return [SymbolTableEntry(key=k, resolved_path=v) for k, v in self._entries.items()]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
