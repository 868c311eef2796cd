# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Shell-style globbing over any L{IFilesystem}, one path segment at a time.
"""

from __future__ import annotations

import posixpath
from fnmatch import fnmatchcase

from layerfs._paths import joinPath
from layerfs.error import ErrorKind, PathError


def _hasMeta(pattern: str) -> bool:
    return any(c in pattern for c in "*?[")


def _globDir(fsys, directory: str, pattern: str, matches: list[str]) -> None:
    # Unreadable directories simply contribute no matches.
    try:
        entries = fsys.readDir(directory)
    except PathError:
        return
    for entry in entries:
        if fnmatchcase(entry.name, pattern):
            matches.append(joinPath(directory, entry.name))


def glob(fsys, pattern: str) -> list[str]:
    """
    Return the canonical paths in C{fsys} matching C{pattern}.

    Only C{readDir} and C{stat} of C{fsys} are used, so decorators get their
    own policy applied to the walk for free.

    @raise PathError: of kind L{ErrorKind.INVALID} if C{pattern} is absolute
        or empty.
    """
    if not pattern or pattern.startswith("/"):
        raise PathError("glob", pattern, ErrorKind.INVALID, "Bad pattern")
    if not _hasMeta(pattern):
        try:
            fsys.stat(pattern)
        except PathError:
            return []
        return [pattern]

    directory, base = posixpath.split(pattern)
    directory = directory.rstrip("/") or "."
    matches: list[str] = []
    if not _hasMeta(directory):
        _globDir(fsys, directory, base, matches)
        return matches

    for parent in glob(fsys, directory):
        _globDir(fsys, parent, base, matches)
    return matches
