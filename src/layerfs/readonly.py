# -*- test-case-name: layerfs.test.test_readonly -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Forbid changes to a filesystem.
"""

from __future__ import annotations

from typing import NoReturn, Optional

from zope.interface import implementer

from twisted.logger import Logger

from layerfs import dispatch
from layerfs._paths import checkPath
from layerfs.error import ErrorKind, PathError
from layerfs.interfaces import FileInfo, IFilesystem, IFullFilesystem

__all__ = ["ReadOnlyFilesystem"]


@implementer(IFullFilesystem)
class ReadOnlyFilesystem:
    """
    A view of another filesystem through which nothing can be changed.

    Every mutating operation raises a L{PathError} of kind
    L{ErrorKind.READ_ONLY} without consulting the wrapped filesystem.  Views
    returned by L{sub} are read-only as well.
    """

    _log = Logger()

    def __init__(self, filesystem: IFilesystem) -> None:
        self._filesystem = filesystem

    def __repr__(self) -> str:
        return f"<ReadOnlyFilesystem of {self._filesystem!r}>"

    def _refuse(self, op: str, name: str) -> NoReturn:
        checkPath(op, name)
        self._log.debug("Refused {op} of {path} on a read-only view", op=op, path=name)
        raise PathError(
            op, name, ErrorKind.READ_ONLY, "Read-only fs does not support writing"
        )

    def open(self, name: str):
        return self._filesystem.open(name)

    def stat(self, name: str) -> FileInfo:
        return self._filesystem.stat(name)

    def readDir(self, name: str) -> list[FileInfo]:
        return self._filesystem.readDir(name)

    def readFile(self, name: str) -> bytes:
        return self._filesystem.readFile(name)

    def glob(self, pattern: str) -> list[str]:
        return self._filesystem.glob(pattern)

    def sub(self, name: str) -> ReadOnlyFilesystem:
        return ReadOnlyFilesystem(self._filesystem.sub(name))

    def lstat(self, name: str) -> FileInfo:
        return dispatch.lstat(self._filesystem, name)

    def readLink(self, name: str) -> str:
        return dispatch.readLink(self._filesystem, name)

    def fullFilePath(self, name: str) -> str:
        return dispatch.fullFilePath(self._filesystem, name)

    def openFile(self, name: str, flags, mode: int) -> NoReturn:
        self._refuse("openfile", name)

    def remove(self, name: str) -> NoReturn:
        self._refuse("remove", name)

    def removeAll(self, name: str) -> NoReturn:
        self._refuse("removeall", name)

    def chtimes(
        self, name: str, atime: Optional[float], mtime: Optional[float]
    ) -> NoReturn:
        self._refuse("chtimes", name)
