"""Directory and file listing restricted to the configured download roots."""
from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, Sequence

import structlog

from integration_service.core.exceptions import InvalidDirectoryError
from integration_service.domain.files import DirectoryEntry, EnumerationOptions, FileEntry

logger = structlog.get_logger(__name__)

_DEFAULT_OPTIONS = EnumerationOptions()


def _normalize(path: str | os.PathLike[str]) -> Path:
    return Path(os.path.abspath(os.path.expanduser(os.fspath(path))))


def _mtime(entry: os.DirEntry[str]) -> datetime:
    return datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc)


class FileService:
    """Lists the contents of directories under the allowed roots only."""

    def __init__(self, allowed_roots: Iterable[str | os.PathLike[str]]):
        self._roots = tuple(_normalize(root) for root in allowed_roots)

    @property
    def allowed_roots(self) -> Sequence[Path]:
        return self._roots

    def is_permissible_directory(self, directory: str | os.PathLike[str]) -> bool:
        candidate = _normalize(directory)
        return any(candidate == root or candidate.is_relative_to(root) for root in self._roots)

    def _ensure_permissible(self, directory: str | os.PathLike[str]) -> Path:
        if not self.is_permissible_directory(directory):
            raise InvalidDirectoryError(
                f"The directory '{os.fspath(directory)}' is not rooted in any of the allowed directories"
            )
        return _normalize(directory)

    async def list_directories(
        self,
        parent_directory: str | os.PathLike[str],
        options: EnumerationOptions | None = None,
    ) -> list[DirectoryEntry]:
        """List directories below ``parent_directory``.

        Raises:
            InvalidDirectoryError: ``parent_directory`` is outside the allowed roots.
            FileNotFoundError: ``parent_directory`` does not exist.
        """
        root = self._ensure_permissible(parent_directory)
        opts = options or _DEFAULT_OPTIONS
        return await asyncio.to_thread(self._scan_directories, root, opts)

    async def list_files(
        self,
        parent_directory: str | os.PathLike[str],
        options: EnumerationOptions | None = None,
    ) -> list[FileEntry]:
        """List files below ``parent_directory``.

        Raises:
            InvalidDirectoryError: ``parent_directory`` is outside the allowed roots.
            FileNotFoundError: ``parent_directory`` does not exist.
        """
        root = self._ensure_permissible(parent_directory)
        opts = options or _DEFAULT_OPTIONS
        return await asyncio.to_thread(self._scan_files, root, opts)

    def _scan_directories(self, root: Path, opts: EnumerationOptions) -> list[DirectoryEntry]:
        found: list[DirectoryEntry] = []
        for entry in self._walk(root, opts):
            if entry.is_dir(follow_symlinks=False) and fnmatch(entry.name, opts.match_pattern):
                found.append(
                    DirectoryEntry(name=entry.name, full_name=entry.path, modified_at=_mtime(entry))
                )
        return found

    def _scan_files(self, root: Path, opts: EnumerationOptions) -> list[FileEntry]:
        found: list[FileEntry] = []
        for entry in self._walk(root, opts):
            if entry.is_file() and fnmatch(entry.name, opts.match_pattern):
                found.append(
                    FileEntry(
                        name=entry.name,
                        full_name=entry.path,
                        length=entry.stat().st_size,
                        modified_at=_mtime(entry),
                    )
                )
        return found

    def _walk(self, root: Path, opts: EnumerationOptions, depth: int = 0):
        if not root.is_dir():
            raise FileNotFoundError(f"The directory '{root}' does not exist")
        try:
            entries = sorted(os.scandir(root), key=lambda e: e.name)
        except PermissionError:
            if depth > 0 and opts.ignore_inaccessible:
                logger.debug("skipping inaccessible directory", path=str(root))
                return
            raise

        for entry in entries:
            if opts.skip_hidden and entry.name.startswith("."):
                continue
            yield entry
            if (
                opts.recurse_subdirectories
                and entry.is_dir(follow_symlinks=False)
                and (opts.max_recursion_depth is None or depth < opts.max_recursion_depth)
            ):
                yield from self._walk(Path(entry.path), opts, depth + 1)
