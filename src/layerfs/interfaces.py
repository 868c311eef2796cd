# -*- test-case-name: layerfs.test.test_dispatch -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Interface documentation for L{layerfs} filesystems.

L{IFilesystem} is the read contract every filesystem provides.  Everything
else is an optional capability, declared by a separate interface so that a
filesystem can be asked whether it supports it.  Callers normally reach the
optional capabilities through the helpers in L{layerfs.dispatch}, which turn a
missing capability into a L{layerfs.error.PathError} of kind
L{layerfs.error.ErrorKind.NOT_IMPLEMENTED}.
"""

from __future__ import annotations

import stat as _stat
from typing import Optional

import attr
from constantly import FlagConstant, Flags
from zope.interface import Interface

__all__ = [
    "OpenFlags",
    "FileInfo",
    "IFile",
    "IWriteFile",
    "IFilesystem",
    "ILstatFilesystem",
    "IReadLinkFilesystem",
    "IWriteFilesystem",
    "IRemoveFilesystem",
    "IRemoveAllFilesystem",
    "IChtimesFilesystem",
    "IFullPathFilesystem",
    "IFullFilesystem",
]


class OpenFlags(Flags):
    """
    Flags controlling L{IWriteFilesystem.openFile}.

    The access mode is C{READ}, C{WRITE}, or both.  The remaining flags have
    the meaning of their C{os.O_*} counterparts.
    """

    READ = FlagConstant()
    WRITE = FlagConstant()
    CREATE = FlagConstant()
    EXCLUSIVE = FlagConstant()
    TRUNCATE = FlagConstant()
    APPEND = FlagConstant()


@attr.s(frozen=True, auto_attribs=True)
class FileInfo:
    """
    A description of a filesystem entry, as returned by C{stat}, C{lstat} and
    C{readDir}.

    @ivar name: The final segment of the entry's path.
    @ivar size: The length of the entry's content in bytes.
    @ivar mode: A L{stat}-style mode: file type bits and permission bits.
    @ivar modTime: The last modification time, in seconds since the epoch.
    """

    name: str
    size: int = 0
    mode: int = _stat.S_IFREG | 0o644
    modTime: float = 0.0

    @classmethod
    def fromStat(cls, name: str, result) -> FileInfo:
        """
        Create a L{FileInfo} from an L{os.stat_result}.
        """
        return cls(
            name=name,
            size=result.st_size,
            mode=result.st_mode,
            modTime=result.st_mtime,
        )

    def isDir(self) -> bool:
        return _stat.S_ISDIR(self.mode)

    def isRegular(self) -> bool:
        return _stat.S_ISREG(self.mode)

    def isSymlink(self) -> bool:
        return _stat.S_ISLNK(self.mode)

    def permissions(self) -> int:
        """
        The permission bits of C{mode}.
        """
        return _stat.S_IMODE(self.mode)


class IFile(Interface):
    """
    An open file.

    Files are context managers: leaving the C{with} block closes them.
    """

    def read(size: int = -1) -> bytes:
        """
        Read up to C{size} bytes, or everything remaining if C{size} is
        negative.
        """

    def seek(offset: int, whence: int = 0) -> int:
        """
        Move the read position, returning the new position.
        """

    def stat() -> FileInfo:
        """
        Describe the open file.
        """

    def close() -> None:
        """
        Close the file.  Closing a file opened for writing commits what was
        written.
        """


class IWriteFile(IFile):
    """
    An open file which may be written to.
    """

    def write(data: bytes) -> int:
        """
        Write C{data}, returning the number of bytes written.
        """


class IFilesystem(Interface):
    """
    A tree of files addressed by canonical slash-separated paths.
    """

    def open(name: str) -> IFile:
        """
        Open the named file for reading.

        @raise layerfs.error.PathError: If the file cannot be opened.
        """

    def stat(name: str) -> FileInfo:
        """
        Describe the named entry, following symbolic links.
        """

    def readDir(name: str) -> list[FileInfo]:
        """
        Describe the entries of the named directory, sorted by name.
        """

    def readFile(name: str) -> bytes:
        """
        Return the entire content of the named file.
        """

    def glob(pattern: str) -> list[str]:
        """
        Return the paths matching a shell-style C{pattern}, one segment at a
        time.
        """

    def sub(name: str) -> IFilesystem:
        """
        Return a filesystem rooted at the named directory.
        """


class ILstatFilesystem(IFilesystem):
    def lstat(name: str) -> FileInfo:
        """
        Describe the named entry without following symbolic links.
        """


class IReadLinkFilesystem(IFilesystem):
    def readLink(name: str) -> str:
        """
        Return the target of the named symbolic link.

        The target is a slash-separated path relative to the link's directory
        and is guaranteed to stay inside the filesystem.

        @raise layerfs.error.PathError: of kind
            L{layerfs.error.ErrorKind.TARGET_OUTSIDE_FS} if it does not.
        """


class IWriteFilesystem(IFilesystem):
    def openFile(name: str, flags: FlagConstant, mode: int) -> IWriteFile:
        """
        Open the named file with L{OpenFlags}, creating it with permission
        bits C{mode} if C{OpenFlags.CREATE} is given.
        """


class IRemoveFilesystem(IFilesystem):
    def remove(name: str) -> None:
        """
        Remove the named file or empty directory.
        """


class IRemoveAllFilesystem(IFilesystem):
    def removeAll(name: str) -> None:
        """
        Remove the named entry and everything below it.  Removing something
        which does not exist is not an error.
        """


class IChtimesFilesystem(IFilesystem):
    def chtimes(name: str, atime: Optional[float], mtime: Optional[float]) -> None:
        """
        Change the access and modification times of the named entry.  A time
        of L{None} is left unchanged.
        """


class IFullPathFilesystem(IFilesystem):
    def fullFilePath(name: str) -> str:
        """
        Return the slash-separated host path backing the named entry.
        """


class IFullFilesystem(
    ILstatFilesystem,
    IReadLinkFilesystem,
    IWriteFilesystem,
    IRemoveFilesystem,
    IRemoveAllFilesystem,
    IChtimesFilesystem,
    IFullPathFilesystem,
):
    """
    A filesystem declaring every capability.
    """
