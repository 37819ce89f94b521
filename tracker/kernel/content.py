"""Content source — where document text comes from.

The kernel only depends on the ContentSource protocol. DirectoryContentSource
serves a corpus laid out on local disk; document paths are POSIX-style and
relative to the corpus root (``notes/today.md``).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from tracker.kernel.errors import ContentReadError

DEFAULT_SUFFIXES = (".md",)


class ContentSource(Protocol):
    async def read_text(self, document_path: str) -> str: ...

    def list_documents(self) -> list[str]: ...

    def path_exists(self, path: str) -> bool: ...


class DirectoryContentSource:
    def __init__(self, root: str | Path, suffixes: tuple[str, ...] = DEFAULT_SUFFIXES):
        self.root = Path(root)
        self.suffixes = suffixes

    def _resolve(self, document_path: str) -> Path:
        path = (self.root / document_path.lstrip("/")).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ContentReadError(document_path, "outside the corpus root")
        return path

    async def read_text(self, document_path: str) -> str:
        path = self._resolve(document_path)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ContentReadError(document_path, str(exc)) from exc

    def list_documents(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file() and p.suffix in self.suffixes
        )

    def path_exists(self, path: str) -> bool:
        if path.strip() in ("", "/"):
            return True
        try:
            return self._resolve(path).exists()
        except ContentReadError:
            return False
