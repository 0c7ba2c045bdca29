"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_checkpointing.storage.well_known_directory import WellKnownDirectory


class InMemoryFileSystem:
    """In-memory FileSystemOperations fake that records every call."""

    def __init__(self) -> None:
        self.files: dict[Path, str] = {}
        self.dirs: set[Path] = set()
        self.calls: list[tuple[str, Path]] = []

    def exists(self, path: Path) -> bool:
        return path in self.files or path in self.dirs

    def is_file(self, path: Path) -> bool:
        return path in self.files

    def mkdir(self, path: Path, *, parents: bool = False) -> None:
        self.calls.append(("mkdir", path))
        self.dirs.add(path)
        if parents:
            self.dirs.update(path.parents)

    def read_text(self, path: Path) -> str:
        self.calls.append(("read_text", path))
        if path not in self.files:
            raise FileNotFoundError(str(path))
        return self.files[path]

    def write_text(self, path: Path, content: str) -> None:
        self.calls.append(("write_text", path))
        self.files[path] = content

    def rename(self, src: Path, dest: Path) -> None:
        self.calls.append(("rename", src))
        if src not in self.files:
            raise FileNotFoundError(str(src))
        self.files[dest] = self.files.pop(src)

    def unlink(self, path: Path) -> None:
        self.calls.append(("unlink", path))
        if path not in self.files:
            raise FileNotFoundError(str(path))
        del self.files[path]

    def calls_named(self, name: str) -> list[Path]:
        return [path for call, path in self.calls if call == name]


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer env vars and `.env` files out of the tests."""
    for name in ("PROJECT_PATH", "WORKFLOW_ENVIRONMENT", "LOG_LEVEL", "WORKFLOW_LOG_TO_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def memory_fs() -> InMemoryFileSystem:
    """Provide an empty in-memory filesystem."""
    return InMemoryFileSystem()


@pytest.fixture
def project_path() -> Path:
    """Provide a fake project root (only ever used with the in-memory filesystem)."""
    return Path("/test/project")


@pytest.fixture
def well_known_dir(project_path: Path, memory_fs: InMemoryFileSystem) -> WellKnownDirectory:
    """Provide a directory resolver bound to the in-memory filesystem."""
    return WellKnownDirectory(project_path, file_system=memory_fs)
