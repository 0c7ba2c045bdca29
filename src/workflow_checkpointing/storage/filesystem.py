from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSystemOperations(Protocol):
    """The filesystem calls made by the state layer.

    Injected so tests can substitute an in-memory fake and assert on the calls.
    `read_text` and `unlink` raise `FileNotFoundError` for missing paths.
    """

    def exists(self, path: Path) -> bool: ...

    def is_file(self, path: Path) -> bool: ...

    def mkdir(self, path: Path, *, parents: bool = False) -> None: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> None: ...

    def rename(self, src: Path, dest: Path) -> None: ...

    def unlink(self, path: Path) -> None: ...


class LocalFileSystemOperations:
    """`pathlib`-backed implementation used outside of tests."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def mkdir(self, path: Path, *, parents: bool = False) -> None:
        path.mkdir(parents=parents, exist_ok=True)

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        path.write_text(content, encoding="utf-8")

    def rename(self, src: Path, dest: Path) -> None:
        # Atomic when src and dest share a filesystem; overwrites dest.
        src.replace(dest)

    def unlink(self, path: Path) -> None:
        path.unlink()
