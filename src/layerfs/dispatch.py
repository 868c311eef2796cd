# -*- test-case-name: layerfs.test.test_dispatch -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Invoke optional capabilities on any L{IFilesystem}.

Each helper adapts its filesystem argument to the interface declaring the
operation.  A filesystem which does not provide that interface causes a
L{PathError} of kind L{ErrorKind.NOT_IMPLEMENTED}; otherwise the call is
passed through unchanged.
"""

from __future__ import annotations

from typing import Optional

from layerfs.error import ErrorKind, PathError
from layerfs.interfaces import (
    FileInfo,
    IChtimesFilesystem,
    IFilesystem,
    IFullPathFilesystem,
    ILstatFilesystem,
    IReadLinkFilesystem,
    IRemoveAllFilesystem,
    IRemoveFilesystem,
    IWriteFile,
    IWriteFilesystem,
    OpenFlags,
)

__all__ = [
    "DEFAULT_FILE_MODE",
    "lstat",
    "readLink",
    "openFile",
    "writeFile",
    "remove",
    "removeAll",
    "chtimes",
    "fullFilePath",
]

DEFAULT_FILE_MODE = 0o644


def _notImplemented(op: str, name: str, message: str) -> PathError:
    return PathError(op, name, ErrorKind.NOT_IMPLEMENTED, message)


def lstat(fsys: IFilesystem, name: str) -> FileInfo:
    """
    Describe C{name} without following symbolic links.
    """
    capable = ILstatFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("lstat", name, "Failed to lstat file")
    return capable.lstat(name)


def readLink(fsys: IFilesystem, name: str) -> str:
    """
    Return the target of the symbolic link C{name}.
    """
    capable = IReadLinkFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("readlink", name, "Failed to read link")
    return capable.readLink(name)


def openFile(fsys: IFilesystem, name: str, flags, mode: int) -> IWriteFile:
    """
    Open C{name} with the given L{OpenFlags}.
    """
    capable = IWriteFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("openfile", name, "Failed to open file")
    return capable.openFile(name, flags, mode)


def writeFile(
    fsys: IFilesystem, name: str, data: bytes, perm: int = DEFAULT_FILE_MODE
) -> None:
    """
    Replace the content of C{name} with C{data}, creating it if necessary.

    The file is closed even when writing fails.  Whatever the file held at
    that point is kept: the file has already been truncated, and a backend
    may keep a partial write.

    @param perm: The permission bits of a newly created file.
    """
    try:
        f = openFile(
            fsys, name, OpenFlags.WRITE | OpenFlags.CREATE | OpenFlags.TRUNCATE, perm
        )
    except PathError as e:
        raise PathError.wrap("writefile", name, "Failed opening file", e) from e
    try:
        f.write(data)
    except PathError as e:
        f.close()
        raise PathError.wrap("writefile", name, "Failed writing to file", e) from e
    try:
        f.close()
    except PathError as e:
        raise PathError.wrap("writefile", name, "Failed closing file", e) from e


def remove(fsys: IFilesystem, name: str) -> None:
    """
    Remove the file or empty directory C{name}.
    """
    capable = IRemoveFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("remove", name, "Failed to remove file")
    capable.remove(name)


def removeAll(fsys: IFilesystem, name: str) -> None:
    """
    Remove C{name} and everything below it.
    """
    capable = IRemoveAllFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("removeall", name, "Failed to remove file")
    capable.removeAll(name)


def chtimes(
    fsys: IFilesystem, name: str, atime: Optional[float], mtime: Optional[float]
) -> None:
    """
    Change the access and modification times of C{name}.
    """
    capable = IChtimesFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("chtimes", name, "Failed to chtimes file")
    capable.chtimes(name, atime, mtime)


def fullFilePath(fsys: IFilesystem, name: str) -> str:
    """
    Return the host path backing C{name}.
    """
    capable = IFullPathFilesystem(fsys, None)
    if capable is None:
        raise _notImplemented("fullfilepath", name, "Failed to get full file path")
    return capable.fullFilePath(name)
