# -*- test-case-name: layerfs.test.test_osfs -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
A filesystem backed by a directory of the host's filesystem.
"""

from __future__ import annotations

import io
import os
from typing import Optional, Union

from zope.interface import implementer

from twisted.logger import Logger
from twisted.python.filepath import FilePath, InsecurePath

from layerfs import _glob
from layerfs._paths import baseName, checkLinkTarget, checkPath
from layerfs.error import ErrorKind, PathError
from layerfs.interfaces import FileInfo, IFullFilesystem, IWriteFile, OpenFlags

__all__ = ["OSFilesystem", "OSFile"]


def _osFlags(op: str, name: str, flags) -> tuple[int, str]:
    """
    Translate L{OpenFlags} into C{os.O_*} flags and an L{io.FileIO} mode.
    """
    read = bool(flags & OpenFlags.READ)
    write = bool(flags & OpenFlags.WRITE)
    if read and write:
        osflags, mode = os.O_RDWR, "r+"
    elif write:
        osflags, mode = os.O_WRONLY, "w"
    elif read:
        osflags, mode = os.O_RDONLY, "r"
    else:
        raise PathError(op, name, ErrorKind.INVALID, "Must read or write")
    if flags & OpenFlags.CREATE:
        osflags |= os.O_CREAT
    if flags & OpenFlags.EXCLUSIVE:
        osflags |= os.O_EXCL
    if flags & OpenFlags.TRUNCATE:
        osflags |= os.O_TRUNC
    if flags & OpenFlags.APPEND:
        osflags |= os.O_APPEND
    return osflags | getattr(os, "O_BINARY", 0), mode


@implementer(IWriteFile)
class OSFile:
    """
    An open host file.

    @ivar name: The path the file was opened with, relative to the root of
        the filesystem which opened it.
    """

    def __init__(self, name: str, raw: io.FileIO) -> None:
        self.name = name
        self._raw = raw

    def _wrap(self, op: str, e: Exception) -> PathError:
        if isinstance(e, ValueError):
            # Wrong direction, or already closed.
            return PathError(op, self.name, ErrorKind.INVALID, str(e))
        return PathError.wrap(op, self.name, f"Failed to {op} file", e)

    def read(self, size: int = -1) -> bytes:
        try:
            return self._raw.read(size) or b""
        except (ValueError, OSError) as e:
            raise self._wrap("read", e) from e

    def seek(self, offset: int, whence: int = 0) -> int:
        try:
            return self._raw.seek(offset, whence)
        except (ValueError, OSError) as e:
            raise self._wrap("seek", e) from e

    def write(self, data: bytes) -> int:
        try:
            return self._raw.write(data)
        except (ValueError, OSError) as e:
            raise self._wrap("write", e) from e

    def stat(self) -> FileInfo:
        try:
            return FileInfo.fromStat(baseName(self.name), os.fstat(self._raw.fileno()))
        except (ValueError, OSError) as e:
            raise self._wrap("stat", e) from e

    def close(self) -> None:
        try:
            self._raw.close()
        except OSError as e:
            raise self._wrap("close", e) from e

    def __enter__(self) -> OSFile:
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.close()


@implementer(IFullFilesystem)
class OSFilesystem:
    """
    A filesystem rooted at a directory of the host's filesystem.

    Canonical paths are translated into host paths by descending from the
    root one segment at a time.

    @ivar _root: The L{FilePath} of the root directory.
    @ivar _directoryMode: The mode (before umask) of directories created
        when opening a file with L{OpenFlags.CREATE}.
    """

    _log = Logger()

    def __init__(
        self, root: Union[str, FilePath], directoryMode: int = 0o777
    ) -> None:
        if not isinstance(root, FilePath):
            root = FilePath(root)
        self._root = root
        self._directoryMode = directoryMode

    def __repr__(self) -> str:
        return f"<OSFilesystem {self._root.path!r}>"

    def _path(self, op: str, name: str) -> FilePath:
        checkPath(op, name)
        if name == ".":
            return self._root
        try:
            return self._root.descendant(name.split("/"))
        except InsecurePath as e:
            raise PathError(op, name, ErrorKind.INVALID_PATH, str(e)) from e

    def open(self, name: str) -> OSFile:
        path = self._path("open", name)
        try:
            return OSFile(name, io.FileIO(path.path, "r"))
        except OSError as e:
            raise PathError.wrap("open", name, "Failed to open file", e) from e

    def stat(self, name: str) -> FileInfo:
        path = self._path("stat", name)
        try:
            return FileInfo.fromStat(baseName(name), os.stat(path.path))
        except OSError as e:
            raise PathError.wrap("stat", name, "Failed to stat file", e) from e

    def readDir(self, name: str) -> list[FileInfo]:
        path = self._path("readdir", name)
        try:
            return [
                FileInfo.fromStat(child, os.lstat(path.child(child).path))
                for child in sorted(path.listdir())
            ]
        except OSError as e:
            raise PathError.wrap("readdir", name, "Failed to read dir", e) from e

    def readFile(self, name: str) -> bytes:
        path = self._path("readfile", name)
        try:
            return path.getContent()
        except OSError as e:
            raise PathError.wrap("readfile", name, "Failed to read file", e) from e

    def glob(self, pattern: str) -> list[str]:
        return _glob.glob(self, pattern)

    def sub(self, name: str) -> OSFilesystem:
        path = self._path("sub", name)
        if name == ".":
            return self
        return OSFilesystem(path, self._directoryMode)

    def lstat(self, name: str) -> FileInfo:
        path = self._path("lstat", name)
        try:
            return FileInfo.fromStat(baseName(name), os.lstat(path.path))
        except OSError as e:
            raise PathError.wrap("lstat", name, "Failed to lstat file", e) from e

    def readLink(self, name: str) -> str:
        path = self._path("readlink", name)
        try:
            target = os.readlink(path.path)
        except OSError as e:
            raise PathError.wrap("readlink", name, "Failed to read link", e) from e
        if os.sep != "/":
            target = target.replace(os.sep, "/")
        return checkLinkTarget("readlink", name, target)

    def openFile(self, name: str, flags, mode: int) -> OSFile:
        """
        Open a host file.

        When L{OpenFlags.CREATE} is given, missing parent directories are
        created first, even if opening the file then fails.
        """
        path = self._path("openfile", name)
        osflags, rawMode = _osFlags("openfile", name, flags)
        if flags & OpenFlags.CREATE:
            parent = path.parent()
            if not parent.isdir():
                self._log.debug(
                    "Creating parent directories for {path}", path=name
                )
                try:
                    os.makedirs(parent.path, self._directoryMode, exist_ok=True)
                except OSError as e:
                    raise PathError.wrap(
                        "openfile", name, "Failed to mkdir", e
                    ) from e
        try:
            fd = os.open(path.path, osflags, mode)
        except OSError as e:
            raise PathError.wrap("openfile", name, "Failed to open file", e) from e
        try:
            raw = io.FileIO(fd, rawMode)
        except OSError as e:
            os.close(fd)
            raise PathError.wrap("openfile", name, "Failed to open file", e) from e
        return OSFile(name, raw)

    def remove(self, name: str) -> None:
        path = self._path("remove", name)
        try:
            if path.isdir() and not path.islink():
                os.rmdir(path.path)
            else:
                os.remove(path.path)
        except OSError as e:
            raise PathError.wrap("remove", name, "Failed to remove file", e) from e

    def removeAll(self, name: str) -> None:
        path = self._path("removeall", name)
        if not os.path.lexists(path.path):
            return
        try:
            path.remove()
        except OSError as e:
            raise PathError.wrap("removeall", name, "Failed to remove file", e) from e

    def chtimes(
        self, name: str, atime: Optional[float], mtime: Optional[float]
    ) -> None:
        path = self._path("chtimes", name)
        try:
            current = os.stat(path.path)
            os.utime(
                path.path,
                (
                    current.st_atime if atime is None else atime,
                    current.st_mtime if mtime is None else mtime,
                ),
            )
        except OSError as e:
            raise PathError.wrap("chtimes", name, "Failed to chtimes file", e) from e

    def fullFilePath(self, name: str) -> str:
        path = self._path("fullfilepath", name)
        return path.path.replace(os.sep, "/")
