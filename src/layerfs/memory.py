# -*- test-case-name: layerfs.test.test_memory -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
An in-memory filesystem, chiefly for tests.

L{MemoryFilesystem} keeps a flat mapping from canonical paths to
L{FileRecord}s.  Directories are implicit: a path is a directory if some
stored path lies below it, or if its own record has a directory mode.
"""

from __future__ import annotations

import io
import stat as _stat
import time
from typing import Mapping, Optional

import attr
from zope.interface import implementer

from twisted.internet.interfaces import IReactorTime

from layerfs import _glob
from layerfs._paths import baseName, checkLinkTarget, checkPath, dirName, joinPath
from layerfs.error import ErrorKind, PathError
from layerfs.interfaces import (
    FileInfo,
    IChtimesFilesystem,
    ILstatFilesystem,
    IReadLinkFilesystem,
    IRemoveAllFilesystem,
    IRemoveFilesystem,
    IWriteFile,
    IWriteFilesystem,
    OpenFlags,
)

__all__ = ["FileRecord", "MemoryFile", "MemoryFilesystem", "MemorySubdirectory"]

_DIRECTORY_MODE = _stat.S_IFDIR | 0o555
_SYMLINK_MODE = _stat.S_IFLNK | 0o777
_MAX_LINKS = 40


@attr.s(auto_attribs=True)
class FileRecord:
    """
    A stored entry of a L{MemoryFilesystem}.

    @ivar data: The content; for a symlink, the UTF-8 encoded target.
    @ivar mode: A L{stat}-style mode.  A mode without file type bits is
        treated as a regular file.
    @ivar modTime: The modification time, in seconds since the epoch.
    """

    data: bytes = b""
    mode: int = _stat.S_IFREG | 0o644
    modTime: float = 0.0

    def isDir(self) -> bool:
        return _stat.S_ISDIR(self.mode)

    def isSymlink(self) -> bool:
        return _stat.S_ISLNK(self.mode)

    def info(self, name: str) -> FileInfo:
        mode = self.mode
        if not _stat.S_IFMT(mode):
            mode |= _stat.S_IFREG
        return FileInfo(name=name, size=len(self.data), mode=mode, modTime=self.modTime)


def _implicitDirectory() -> FileRecord:
    return FileRecord(data=b"", mode=_DIRECTORY_MODE, modTime=0.0)


@implementer(IWriteFile)
class MemoryFile:
    """
    An open file of a L{MemoryFilesystem}.

    A file is opened either for reading, with a cursor over a snapshot of the
    content, or for writing, with a buffer that replaces the content when the
    file is closed.

    @ivar name: The path the file was opened with.
    """

    def __init__(
        self,
        filesystem: MemoryFilesystem,
        key: str,
        name: str,
        record: FileRecord,
        reader: Optional[io.BytesIO] = None,
        writer: Optional[bytearray] = None,
    ) -> None:
        self.name = name
        self._filesystem = filesystem
        self._key = key
        self._record = record
        self._reader = reader
        self._writer = writer
        self._closed = False

    def _readable(self, op: str) -> io.BytesIO:
        if self._closed:
            raise PathError(op, self.name, ErrorKind.INVALID, "File already closed")
        if self._reader is None:
            raise PathError(
                op, self.name, ErrorKind.INVALID, "File not open for reading"
            )
        return self._reader

    def read(self, size: int = -1) -> bytes:
        return self._readable("read").read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        try:
            return self._readable("seek").seek(offset, whence)
        except ValueError as e:
            raise PathError("seek", self.name, ErrorKind.INVALID, str(e)) from e

    def write(self, data: bytes) -> int:
        if self._closed:
            raise PathError("write", self.name, ErrorKind.INVALID, "File already closed")
        if self._writer is None:
            raise PathError(
                "write", self.name, ErrorKind.INVALID, "File not open for writing"
            )
        self._writer.extend(data)
        return len(data)

    def stat(self) -> FileInfo:
        return self._record.info(baseName(self.name))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._filesystem._commit(self._key, self._record, bytes(self._writer))
            self._writer = None

    def __enter__(self) -> MemoryFile:
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.close()


@implementer(
    ILstatFilesystem,
    IReadLinkFilesystem,
    IWriteFilesystem,
    IRemoveFilesystem,
    IRemoveAllFilesystem,
    IChtimesFilesystem,
)
class MemoryFilesystem:
    """
    A filesystem whose files live in a L{dict}.

    Symbolic links in the final component of a path are followed by
    C{stat}, C{open}, C{readFile}, C{readDir}, C{openFile} and C{chtimes}.

    Nothing here is synchronized: concurrent writers must provide their own
    locking, and of two handles writing the same file the one closed last
    wins.

    @ivar files: The mapping of canonical paths to L{FileRecord}s.
    """

    def __init__(
        self,
        files: Optional[Mapping[str, FileRecord]] = None,
        clock: Optional[IReactorTime] = None,
    ) -> None:
        """
        @param files: Initial content.
        @param clock: The source of modification times.  Defaults to the
            wall clock.
        """
        self.files: dict[str, FileRecord] = dict(files or {})
        self._seconds = clock.seconds if clock is not None else time.time

    def __repr__(self) -> str:
        return f"<MemoryFilesystem with {len(self.files)} entries>"

    def _entry(self, name: str) -> Optional[FileRecord]:
        if name == ".":
            return _implicitDirectory()
        record = self.files.get(name)
        if record is not None:
            return record
        prefix = name + "/"
        if any(key.startswith(prefix) for key in self.files):
            return _implicitDirectory()
        return None

    def _resolve(self, op: str, name: str) -> str:
        """
        Follow symbolic links in the final component of C{name}.
        """
        current = name
        for _ in range(_MAX_LINKS):
            record = self.files.get(current)
            if record is None or not record.isSymlink():
                return current
            target = checkLinkTarget(op, current, record.data.decode("utf-8"))
            current = joinPath(dirName(current), target)
        raise PathError(
            op, name, ErrorKind.INVALID, "Too many levels of symbolic links"
        )

    def _existing(self, op: str, name: str) -> tuple[str, FileRecord]:
        checkPath(op, name)
        key = self._resolve(op, name)
        record = self._entry(key)
        if record is None:
            raise PathError(op, name, ErrorKind.NOT_EXIST, "File does not exist")
        return key, record

    def _commit(self, key: str, record: FileRecord, data: bytes) -> None:
        record.data = data
        record.modTime = self._seconds()
        self.files[key] = record

    def open(self, name: str) -> MemoryFile:
        key, record = self._existing("open", name)
        if record.isDir():
            raise PathError("open", name, ErrorKind.INVALID, "Is a directory")
        return MemoryFile(self, key, name, record, reader=io.BytesIO(record.data))

    def stat(self, name: str) -> FileInfo:
        _, record = self._existing("stat", name)
        return record.info(baseName(name))

    def readDir(self, name: str) -> list[FileInfo]:
        key, record = self._existing("readdir", name)
        if not record.isDir():
            raise PathError("readdir", name, ErrorKind.INVALID, "Not a directory")
        prefix = "" if key == "." else key + "/"
        children: dict[str, Optional[FileRecord]] = {}
        for path, child in self.files.items():
            if not path.startswith(prefix):
                continue
            childName, deeper, _ = path[len(prefix) :].partition("/")
            if deeper:
                children.setdefault(childName, None)
            else:
                children[childName] = child
        return [
            (children[childName] or _implicitDirectory()).info(childName)
            for childName in sorted(children)
        ]

    def readFile(self, name: str) -> bytes:
        _, record = self._existing("readfile", name)
        if record.isDir():
            raise PathError("readfile", name, ErrorKind.INVALID, "Is a directory")
        return bytes(record.data)

    def glob(self, pattern: str) -> list[str]:
        return _glob.glob(self, pattern)

    def sub(self, name: str):
        checkPath("sub", name)
        if name == ".":
            return self
        return MemorySubdirectory(self, name)

    def lstat(self, name: str) -> FileInfo:
        checkPath("lstat", name)
        record = self._entry(name)
        if record is None:
            raise PathError("lstat", name, ErrorKind.NOT_EXIST, "File does not exist")
        return record.info(baseName(name))

    def readLink(self, name: str) -> str:
        checkPath("readlink", name)
        record = self._entry(name)
        if record is None:
            raise PathError(
                "readlink", name, ErrorKind.NOT_EXIST, "File does not exist"
            )
        if not record.isSymlink():
            raise PathError("readlink", name, ErrorKind.INVALID, "File is not a link")
        return checkLinkTarget("readlink", name, record.data.decode("utf-8"))

    def openFile(self, name: str, flags, mode: int) -> MemoryFile:
        """
        Open a file following the rules of C{open(2)}, except that a file may
        not be opened for reading and writing at once.

        Truncation happens when the file is opened; written content replaces
        the file's content when the handle is closed, and a newly created
        file only appears at that point.
        """
        checkPath("openfile", name)
        read = bool(flags & OpenFlags.READ)
        write = bool(flags & OpenFlags.WRITE)
        if not read and not write:
            raise PathError("openfile", name, ErrorKind.INVALID, "Must read or write")
        if read and write:
            raise PathError(
                "openfile",
                name,
                ErrorKind.INVALID,
                "Reading and writing at once is not supported",
            )
        if flags & OpenFlags.CREATE:
            if not write:
                raise PathError(
                    "openfile",
                    name,
                    ErrorKind.INVALID,
                    "May not create when not writing",
                )
        elif flags & OpenFlags.EXCLUSIVE:
            raise PathError(
                "openfile",
                name,
                ErrorKind.INVALID,
                "May only use exclusive when creating",
            )

        key = self._resolve("openfile", name)
        record = self._entry(key)
        if record is None:
            if not flags & OpenFlags.CREATE:
                raise PathError(
                    "openfile", name, ErrorKind.NOT_EXIST, "File does not exist"
                )
            if not _stat.S_IFMT(mode):
                mode |= _stat.S_IFREG
            record = FileRecord(data=b"", mode=mode, modTime=self._seconds())
        elif flags & OpenFlags.EXCLUSIVE:
            raise PathError("openfile", name, ErrorKind.EXIST, "File already exists")

        if record.isDir():
            raise PathError("openfile", name, ErrorKind.INVALID, "Is a directory")

        if flags & OpenFlags.TRUNCATE:
            if not write:
                raise PathError(
                    "openfile",
                    name,
                    ErrorKind.INVALID,
                    "May not truncate when not writing",
                )
            record.data = b""

        append = bool(flags & OpenFlags.APPEND)
        if append and not write:
            raise PathError(
                "openfile", name, ErrorKind.INVALID, "May not append when not writing"
            )

        if read:
            return MemoryFile(self, key, name, record, reader=io.BytesIO(record.data))
        return MemoryFile(
            self,
            key,
            name,
            record,
            writer=bytearray(record.data if append else b""),
        )

    def remove(self, name: str) -> None:
        checkPath("remove", name)
        if name not in self.files:
            raise PathError("remove", name, ErrorKind.NOT_EXIST, "File does not exist")
        del self.files[name]

    def removeAll(self, name: str) -> None:
        """
        Remove C{name} and every path below it.  Removing C{"."} empties the
        filesystem.
        """
        checkPath("removeall", name)
        if name == ".":
            self.files.clear()
            return
        prefix = name + "/"
        for path in [p for p in self.files if p == name or p.startswith(prefix)]:
            del self.files[path]

    def chtimes(
        self, name: str, atime: Optional[float], mtime: Optional[float]
    ) -> None:
        """
        Change the modification time of C{name}.  Access times are not
        recorded, so C{atime} is ignored.
        """
        checkPath("chtimes", name)
        record = self.files.get(self._resolve("chtimes", name))
        if record is None:
            raise PathError("chtimes", name, ErrorKind.NOT_EXIST, "File does not exist")
        if mtime is not None:
            record.modTime = mtime

    def symlink(self, target: str, name: str) -> None:
        """
        Create a symbolic link at C{name} pointing to C{target}.

        The target is not checked until the link is read or followed.
        """
        checkPath("symlink", name)
        if self._entry(name) is not None:
            raise PathError("symlink", name, ErrorKind.EXIST, "File already exists")
        self.files[name] = FileRecord(
            data=target.encode("utf-8"), mode=_SYMLINK_MODE, modTime=self._seconds()
        )


@implementer(
    ILstatFilesystem,
    IReadLinkFilesystem,
    IWriteFilesystem,
    IRemoveFilesystem,
    IRemoveAllFilesystem,
    IChtimesFilesystem,
)
class MemorySubdirectory:
    """
    A view of a directory of a L{MemoryFilesystem}.

    Every path is validated, prefixed with the directory, and handed to the
    underlying filesystem; no data is copied.  Symbolic links followed
    through the view must not lead out of it.
    """

    def __init__(self, filesystem: MemoryFilesystem, directory: str) -> None:
        self._filesystem = filesystem
        self._directory = directory

    def __repr__(self) -> str:
        return f"<MemorySubdirectory {self._directory!r} of {self._filesystem!r}>"

    def _full(self, op: str, name: str) -> str:
        checkPath(op, name)
        return joinPath(self._directory, name)

    def _followed(self, op: str, name: str) -> str:
        """
        Like L{_full}, but first make sure that following symbolic links in
        the final component of C{name} stays inside this view.
        """
        full = self._full(op, name)
        current = name
        for _ in range(_MAX_LINKS):
            record = self._filesystem.files.get(joinPath(self._directory, current))
            if record is None or not record.isSymlink():
                break
            target = checkLinkTarget(op, current, record.data.decode("utf-8"))
            current = joinPath(dirName(current), target)
        return full

    def open(self, name: str) -> MemoryFile:
        return self._filesystem.open(self._followed("open", name))

    def stat(self, name: str) -> FileInfo:
        return self._filesystem.stat(self._followed("stat", name))

    def readDir(self, name: str) -> list[FileInfo]:
        return self._filesystem.readDir(self._followed("readdir", name))

    def readFile(self, name: str) -> bytes:
        return self._filesystem.readFile(self._followed("readfile", name))

    def glob(self, pattern: str) -> list[str]:
        return _glob.glob(self, pattern)

    def sub(self, name: str):
        full = self._full("sub", name)
        if name == ".":
            return self
        return MemorySubdirectory(self._filesystem, full)

    def lstat(self, name: str) -> FileInfo:
        return self._filesystem.lstat(self._full("lstat", name))

    def readLink(self, name: str) -> str:
        # The target must also stay inside this view, not just the backend.
        target = self._filesystem.readLink(self._full("readlink", name))
        return checkLinkTarget("readlink", name, target)

    def openFile(self, name: str, flags, mode: int) -> MemoryFile:
        return self._filesystem.openFile(
            self._followed("openfile", name), flags, mode
        )

    def remove(self, name: str) -> None:
        self._filesystem.remove(self._full("remove", name))

    def removeAll(self, name: str) -> None:
        self._filesystem.removeAll(self._full("removeall", name))

    def chtimes(
        self, name: str, atime: Optional[float], mtime: Optional[float]
    ) -> None:
        self._filesystem.chtimes(self._followed("chtimes", name), atime, mtime)

    def symlink(self, target: str, name: str) -> None:
        self._filesystem.symlink(target, self._full("symlink", name))
