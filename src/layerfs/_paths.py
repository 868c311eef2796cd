# -*- test-case-name: layerfs.test.test_paths -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Canonical path handling shared by every filesystem implementation.

Paths are slash-separated and relative to the root of a filesystem.  C{"."}
names the root itself; any other canonical path is a non-empty sequence of
segments, none of which is empty, C{"."} or C{".."}.
"""

import ntpath
import posixpath

from layerfs.error import ErrorKind, PathError


def validPath(name: str) -> bool:
    """
    Is C{name} a canonical path?
    """
    if name == ".":
        return True
    if not isinstance(name, str) or not name:
        return False
    for segment in name.split("/"):
        if segment in ("", ".", ".."):
            return False
    return True


def checkPath(op: str, name: str) -> None:
    """
    Raise a L{PathError} of kind L{ErrorKind.INVALID_PATH} unless C{name} is
    canonical.
    """
    if not validPath(name):
        raise PathError(op, name, ErrorKind.INVALID_PATH, "Invalid path")


def joinPath(*segments: str) -> str:
    """
    Join and clean slash-separated paths, returning C{"."} for the root.
    """
    return posixpath.normpath(posixpath.join(*segments)) if segments else "."


def baseName(name: str) -> str:
    """
    The final segment of a canonical path; C{"."} for the root.
    """
    return posixpath.basename(name) or "."


def dirName(name: str) -> str:
    """
    The parent of a canonical path; C{"."} for top level entries.
    """
    return posixpath.dirname(name) or "."


def isAbsolute(target: str) -> bool:
    """
    Is a link target absolute on either POSIX or Windows hosts?
    """
    return posixpath.isabs(target) or ntpath.isabs(target)


def checkLinkTarget(op: str, name: str, target: str) -> str:
    """
    Make sure the target of the symlink C{name} stays inside the filesystem.

    The target is interpreted relative to the directory containing the link.
    It is returned unchanged so callers keep relative link semantics; it is
    only rejected when it is absolute or when resolving it climbs above the
    root.

    @param op: The operation name used in any error.
    @param name: The canonical path of the link.
    @param target: The slash-separated link target.

    @raise PathError: of kind L{ErrorKind.TARGET_OUTSIDE_FS}.
    """
    if isAbsolute(target):
        raise PathError(
            op, name, ErrorKind.TARGET_OUTSIDE_FS, f"Target {target} is absolute"
        )
    if not validPath(joinPath(dirName(name), target)):
        raise PathError(
            op,
            name,
            ErrorKind.TARGET_OUTSIDE_FS,
            f"Target {target} is outside the FS",
        )
    return target
