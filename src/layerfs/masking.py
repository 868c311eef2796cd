# -*- test-case-name: layerfs.test.test_masking -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Hide part of a filesystem.
"""

from __future__ import annotations

from typing import Callable, Optional

from zope.interface import implementer

from twisted.logger import Logger

from layerfs import _glob, dispatch
from layerfs._paths import checkPath, joinPath
from layerfs.error import ErrorKind, PathError, isKind
from layerfs.interfaces import FileInfo, IFilesystem, IFullFilesystem, IWriteFile

__all__ = ["MaskingFilesystem", "Predicate"]

Predicate = Callable[[str, FileInfo], bool]


@implementer(IFullFilesystem)
class MaskingFilesystem:
    """
    A filesystem showing only the entries of another filesystem accepted by a
    predicate.

    The predicate is called with the path of an entry relative to the root of
    the outermost masked filesystem, even when called through a view returned
    by L{sub}, and the entry's L{FileInfo}.  A rejected entry is omitted from
    directory listings and globs; any other operation on it raises a
    L{PathError} of kind L{ErrorKind.FILE_MASKED}.

    Masking hides existing entries; it does not prevent creating new ones.

    @ivar _filesystem: The wrapped filesystem.
    @ivar _predicate: The visibility predicate.
    @ivar _prefix: The path of this view's root relative to the root the
        predicate sees.
    """

    _log = Logger()

    def __init__(
        self, filesystem: IFilesystem, predicate: Predicate, prefix: str = "."
    ) -> None:
        self._filesystem = filesystem
        self._predicate = predicate
        self._prefix = prefix

    def __repr__(self) -> str:
        return f"<MaskingFilesystem {self._prefix!r} of {self._filesystem!r}>"

    def _visible(self, op: str, name: str, info: FileInfo) -> bool:
        path = joinPath(self._prefix, name)
        try:
            return bool(self._predicate(path, info))
        except Exception as e:
            raise PathError.wrap(op, path, "Failed filtering file", e) from e

    def _check(self, op: str, name: str, describe) -> FileInfo:
        checkPath(op, name)
        info = describe(name)
        if not self._visible(op, name, info):
            self._log.debug("Masked {path} during {op}", path=name, op=op)
            raise PathError(op, name, ErrorKind.FILE_MASKED, "File does not exist")
        return info

    def _checkStat(self, op: str, name: str) -> FileInfo:
        return self._check(op, name, self._filesystem.stat)

    def _checkLstat(self, op: str, name: str) -> FileInfo:
        return self._check(
            op, name, lambda name: dispatch.lstat(self._filesystem, name)
        )

    def _checkMutation(self, op: str, name: str, follow: bool = False) -> None:
        """
        Refuse to change a masked entry; let a missing one through so the
        wrapped filesystem can report it.
        """
        try:
            if follow:
                self._checkStat(op, name)
            else:
                self._checkLstat(op, name)
        except PathError as e:
            if isKind(e, ErrorKind.FILE_MASKED) or not isKind(
                e, ErrorKind.NOT_EXIST
            ):
                raise

    def open(self, name: str):
        self._checkStat("open", name)
        return self._filesystem.open(name)

    def stat(self, name: str) -> FileInfo:
        return self._checkStat("stat", name)

    def readDir(self, name: str) -> list[FileInfo]:
        self._checkStat("readdir", name)
        visible = []
        for entry in self._filesystem.readDir(name):
            if self._visible("readdir", joinPath(name, entry.name), entry):
                visible.append(entry)
        return visible

    def readFile(self, name: str) -> bytes:
        self._checkStat("readfile", name)
        return self._filesystem.readFile(name)

    def glob(self, pattern: str) -> list[str]:
        return _glob.glob(self, pattern)

    def sub(self, name: str) -> MaskingFilesystem:
        self._checkStat("sub", name)
        return MaskingFilesystem(
            self._filesystem.sub(name),
            self._predicate,
            joinPath(self._prefix, name),
        )

    def lstat(self, name: str) -> FileInfo:
        return self._checkLstat("lstat", name)

    def readLink(self, name: str) -> str:
        self._checkLstat("readlink", name)
        return dispatch.readLink(self._filesystem, name)

    def openFile(self, name: str, flags, mode: int) -> IWriteFile:
        self._checkMutation("openfile", name, follow=True)
        return dispatch.openFile(self._filesystem, name, flags, mode)

    def remove(self, name: str) -> None:
        self._checkMutation("remove", name)
        dispatch.remove(self._filesystem, name)

    def removeAll(self, name: str) -> None:
        self._checkMutation("removeall", name)
        dispatch.removeAll(self._filesystem, name)

    def chtimes(
        self, name: str, atime: Optional[float], mtime: Optional[float]
    ) -> None:
        self._checkMutation("chtimes", name, follow=True)
        dispatch.chtimes(self._filesystem, name, atime, mtime)

    def fullFilePath(self, name: str) -> str:
        self._checkLstat("fullfilepath", name)
        return dispatch.fullFilePath(self._filesystem, name)
