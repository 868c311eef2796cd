# -*- test-case-name: layerfs.test.test_error -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Errors raised by L{layerfs} filesystems.

Every failure is a L{PathError} naming the operation and the path it
concerns, classified by one of the L{ErrorKind} constants.  Layers that catch
an error from a lower layer wrap it with L{PathError.wrap} and raise the
wrapper C{from} the original, so the original kind stays visible to
L{isKind}.
"""

from __future__ import annotations

import errno
from typing import Optional

from constantly import NamedConstant, Names

__all__ = ["ErrorKind", "PathError", "isKind"]


class ErrorKind(Names):
    """
    The closed set of failure classifications.

    @cvar INVALID: A malformed request, such as an impossible combination of
        open flags or reading from a write-only handle.
    @cvar INVALID_PATH: A path that is not in canonical form.
    @cvar NOT_IMPLEMENTED: The filesystem does not provide the capability.
    @cvar NOT_EXIST: The named entry does not exist.
    @cvar EXIST: The named entry already exists.
    @cvar PERMISSION: Access was denied.
    @cvar TARGET_OUTSIDE_FS: A symlink target escapes the filesystem root.
    @cvar FILE_MASKED: A visibility predicate hid the entry.
    @cvar READ_ONLY: A mutation was attempted on a read-only view.
    @cvar OTHER: Anything else, such as an unexpected native error.
    """

    INVALID = NamedConstant()
    INVALID_PATH = NamedConstant()
    NOT_IMPLEMENTED = NamedConstant()
    NOT_EXIST = NamedConstant()
    EXIST = NamedConstant()
    PERMISSION = NamedConstant()
    TARGET_OUTSIDE_FS = NamedConstant()
    FILE_MASKED = NamedConstant()
    READ_ONLY = NamedConstant()
    OTHER = NamedConstant()


_IMPLIED = {
    ErrorKind.INVALID_PATH: (ErrorKind.INVALID,),
    ErrorKind.READ_ONLY: (ErrorKind.INVALID,),
    ErrorKind.FILE_MASKED: (ErrorKind.PERMISSION,),
}


_ERRNO_KINDS = {
    errno.ENOENT: ErrorKind.NOT_EXIST,
    errno.EEXIST: ErrorKind.EXIST,
    errno.EACCES: ErrorKind.PERMISSION,
    errno.EPERM: ErrorKind.PERMISSION,
    errno.EISDIR: ErrorKind.INVALID,
    errno.ENOTDIR: ErrorKind.INVALID,
    errno.EINVAL: ErrorKind.INVALID,
    errno.ENOTEMPTY: ErrorKind.INVALID,
    errno.ELOOP: ErrorKind.INVALID,
}


def _kindOf(error: BaseException) -> NamedConstant:
    """
    Classify an arbitrary exception.
    """
    if isinstance(error, PathError):
        return error.kind
    if isinstance(error, OSError) and error.errno is not None:
        return _ERRNO_KINDS.get(error.errno, ErrorKind.OTHER)
    return ErrorKind.OTHER


class PathError(Exception):
    """
    An operation on a path failed.

    @ivar op: The name of the operation, for example C{"openfile"}.
    @ivar path: The path the operation was given.
    @ivar kind: The L{ErrorKind} classifying the failure.
    @ivar message: A human readable description.
    """

    def __init__(
        self, op: str, path: str, kind: NamedConstant, message: str = ""
    ) -> None:
        super().__init__(op, path, kind, message)
        self.op = op
        self.path = path
        self.kind = kind
        self.message = message

    @classmethod
    def wrap(
        cls, op: str, path: str, message: str, cause: BaseException
    ) -> PathError:
        """
        Create a L{PathError} describing C{cause} in the context of C{op} on
        C{path}.

        The caller is expected to C{raise} the result C{from cause}.  The kind
        of a wrapped L{PathError} is kept; the kind of a wrapped L{OSError} is
        derived from its C{errno}.
        """
        return cls(op, path, _kindOf(cause), f"{message}: {cause}")

    def __str__(self) -> str:
        text = f"{self.op} {self.path}: {self.kind.name}"
        if self.message:
            text = f"{text}: {self.message}"
        return text

    def __repr__(self) -> str:
        return (
            f"PathError(op={self.op!r}, path={self.path!r}, "
            f"kind=ErrorKind.{self.kind.name}, message={self.message!r})"
        )


def isKind(error: Optional[BaseException], kind: NamedConstant) -> bool:
    """
    Determine whether C{error}, or any error it was raised from, is of the
    given kind.

    Some kinds imply others: an L{ErrorKind.INVALID_PATH} or
    L{ErrorKind.READ_ONLY} error is also L{ErrorKind.INVALID}, and an
    L{ErrorKind.FILE_MASKED} error is also L{ErrorKind.PERMISSION}.

    @param error: The exception to examine, or L{None}.
    @param kind: The L{ErrorKind} to look for.
    """
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        found = _kindOf(error)
        if found is kind or kind in _IMPLIED.get(found, ()):
            return True
        error = error.__cause__
    return False
