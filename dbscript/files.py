"""
On‑disk file system access behind coroutine signatures.

Reads and writes go through :mod:`aiofiles`; the remaining blocking calls
(``shutil``, globbing, ``utime``) run in a worker thread.
"""
from __future__ import annotations
import asyncio
import datetime as dt
import os
import pathlib
import shutil
import stat
import typing as t

import aiofiles
import aiofiles.os

_DELETE_WAIT_ITERATIONS = 10
_DELETE_WAIT_SECONDS = 0.1


def _directory_of(path: str) -> str:
    return os.path.dirname(path) if os.path.isfile(path) else path


def _subdirectories(path: str) -> list[str]:
    with os.scandir(path) as entries:
        return [e.path for e in entries if e.is_dir(follow_symlinks=False)]


def _glob(directory: str, pattern: str, top_directory_only: bool) -> t.Iterator[pathlib.Path]:
    root = pathlib.Path(directory)
    return root.glob(pattern) if top_directory_only else root.rglob(pattern)


class FileProvider:
    """
    File operations rooted at a web root (for :meth:`get_absolute_path`) and a
    content root (for :meth:`map_path`).  A root given as a file path is
    replaced by the directory holding it.
    """

    def __init__(self, web_root: str, content_root: str | None = None) -> None:
        self.root: str = _directory_of(web_root)
        self.base_directory: str = _directory_of(content_root or "")

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #
    async def combine(self, *paths: str) -> str:
        return os.path.join(*paths)

    async def get_absolute_path(self, *paths: str) -> str:
        return os.path.join(self.root, *paths)

    async def map_path(self, path: str) -> str:
        """Map a virtual path such as ``~/bin`` under the content root."""
        path = path.replace("~/", "").lstrip("/")
        return os.path.join(self.base_directory, *path.split("/"))

    async def get_directory_name(self, path: str) -> str:
        return os.path.dirname(path)

    async def get_directory_name_only(self, path: str) -> str:
        return pathlib.Path(path).name

    async def get_file_extension(self, file_path: str) -> str:
        return os.path.splitext(file_path)[1]

    async def get_file_name(self, path: str) -> str:
        return os.path.basename(path)

    async def get_file_name_without_extension(self, file_path: str) -> str:
        return os.path.splitext(os.path.basename(file_path))[0]

    async def get_parent_directory(self, directory_path: str) -> str:
        return os.path.dirname(os.path.abspath(directory_path))

    # ------------------------------------------------------------------ #
    # Directories
    # ------------------------------------------------------------------ #
    async def directory_exists(self, path: str) -> bool:
        return await aiofiles.os.path.isdir(path)

    async def is_directory(self, path: str) -> bool:
        return await self.directory_exists(path)

    async def create_directory(self, path: str) -> None:
        """Create *path* and any missing parents."""
        if not await self.directory_exists(path):
            await aiofiles.os.makedirs(path, exist_ok=True)

    async def _delete_directory_recursive(self, path: str) -> None:
        await asyncio.to_thread(shutil.rmtree, path)
        # the OS may report the directory for a short while after removal
        for _ in range(_DELETE_WAIT_ITERATIONS):
            if not await self.directory_exists(path):
                return
            await asyncio.sleep(_DELETE_WAIT_SECONDS)

    async def delete_directory(self, path: str) -> None:
        """Depth‑first delete of *path*, retried once on an OS error."""
        if not path:
            raise ValueError("path is required")

        for subdirectory in await asyncio.to_thread(_subdirectories, path):
            await self.delete_directory(subdirectory)

        try:
            await self._delete_directory_recursive(path)
        except OSError:
            await self._delete_directory_recursive(path)

    async def directory_move(self, source_dir_name: str, dest_dir_name: str) -> None:
        await aiofiles.os.rename(source_dir_name, dest_dir_name)

    async def get_directories(
        self, path: str, search_pattern: str = "", top_directory_only: bool = True
    ) -> list[str]:
        def _run() -> list[str]:
            matches = _glob(path, search_pattern or "*", top_directory_only)
            return sorted(str(p) for p in matches if p.is_dir())

        return await asyncio.to_thread(_run)

    # ------------------------------------------------------------------ #
    # Files
    # ------------------------------------------------------------------ #
    async def file_exists(self, file_path: str) -> bool:
        return await aiofiles.os.path.isfile(file_path)

    async def create_file(self, path: str) -> None:
        """Create an empty file unless one already exists."""
        if await self.file_exists(path):
            return
        async with aiofiles.open(path, "wb"):
            pass

    async def delete_file(self, file_path: str) -> None:
        if not await self.file_exists(file_path):
            return
        await aiofiles.os.remove(file_path)

    async def file_copy(
        self, source_file_name: str, dest_file_name: str, overwrite: bool = False
    ) -> None:
        if not overwrite and await aiofiles.os.path.exists(dest_file_name):
            raise FileExistsError(dest_file_name)
        await asyncio.to_thread(shutil.copyfile, source_file_name, dest_file_name)

    async def file_move(self, source_file_name: str, dest_file_name: str) -> None:
        if await aiofiles.os.path.exists(dest_file_name):
            raise FileExistsError(dest_file_name)
        await asyncio.to_thread(shutil.move, source_file_name, dest_file_name)

    async def file_length(self, path: str) -> int:
        """Size in bytes, or -1 for a directory or a missing file."""
        if not await self.file_exists(path):
            return -1
        return await aiofiles.os.path.getsize(path)

    async def enumerate_files(
        self, directory_path: str, search_pattern: str, top_directory_only: bool = True
    ) -> t.Iterator[str]:
        def _run() -> list[str]:
            matches = _glob(directory_path, search_pattern or "*", top_directory_only)
            return [str(p) for p in matches if p.is_file()]

        return iter(await asyncio.to_thread(_run))

    async def get_files(
        self, directory_path: str, search_pattern: str = "", top_directory_only: bool = True
    ) -> list[str]:
        return sorted(
            await self.enumerate_files(directory_path, search_pattern, top_directory_only)
        )

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #
    async def get_permissions(self, path: str) -> int:
        """POSIX permission bits of *path*, e.g. ``0o755``."""
        return stat.S_IMODE((await aiofiles.os.stat(path)).st_mode)

    async def get_creation_time(self, path: str) -> dt.datetime:
        return dt.datetime.fromtimestamp(await aiofiles.os.path.getctime(path))

    async def get_last_access_time(self, path: str) -> dt.datetime:
        return dt.datetime.fromtimestamp(await aiofiles.os.path.getatime(path))

    async def get_last_write_time(self, path: str) -> dt.datetime:
        return dt.datetime.fromtimestamp(await aiofiles.os.path.getmtime(path))

    async def get_last_write_time_utc(self, path: str) -> dt.datetime:
        return dt.datetime.fromtimestamp(
            await aiofiles.os.path.getmtime(path), tz=dt.timezone.utc
        )

    async def set_last_write_time_utc(self, path: str, last_write_time_utc: dt.datetime) -> None:
        if last_write_time_utc.tzinfo is None:
            last_write_time_utc = last_write_time_utc.replace(tzinfo=dt.timezone.utc)
        mtime = last_write_time_utc.timestamp()
        atime = await aiofiles.os.path.getatime(path)
        await asyncio.to_thread(os.utime, path, (atime, mtime))

    # ------------------------------------------------------------------ #
    # Contents
    # ------------------------------------------------------------------ #
    async def read_all_bytes(self, file_path: str) -> bytes:
        """Contents of *file_path*, or ``b""`` when it does not exist."""
        if not await self.file_exists(file_path):
            return b""
        async with aiofiles.open(file_path, "rb") as fh:
            return await fh.read()

    async def read_all_text(self, path: str, encoding: str) -> str:
        async with aiofiles.open(path, "r", encoding=encoding) as fh:
            return await fh.read()

    async def write_all_bytes(self, file_path: str, data: bytes) -> None:
        async with aiofiles.open(file_path, "wb") as fh:
            await fh.write(data)

    async def write_all_text(self, path: str, contents: str, encoding: str) -> None:
        """Create or overwrite *path* with *contents*."""
        async with aiofiles.open(path, "w", encoding=encoding) as fh:
            await fh.write(contents)
