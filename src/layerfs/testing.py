# -*- test-case-name: layerfs.test.test_testing -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Conformance checks for L{layerfs.interfaces.IFilesystem} implementations.

These are meant to be called from unit tests of filesystems and
decorators: each raises L{VerificationError} describing the first problem
found.
"""

from __future__ import annotations

import posixpath
from typing import Iterable, Mapping, Tuple, Union

from layerfs import dispatch
from layerfs._paths import baseName, joinPath
from layerfs.error import PathError
from layerfs.interfaces import IFilesystem, OpenFlags

__all__ = [
    "VerificationError",
    "verifyFileOpen",
    "verifyFilesystem",
    "verifyFileWrite",
    "verifyFileAppend",
]

Files = Union[Mapping[str, bytes], Iterable[Tuple[str, bytes]]]


class VerificationError(AssertionError):
    """
    A filesystem did not behave as expected.
    """


def _items(files: Files) -> list[tuple[str, bytes]]:
    if isinstance(files, Mapping):
        return list(files.items())
    return list(files)


def verifyFileOpen(fsys: IFilesystem, name: str, data: bytes) -> None:
    """
    Check that opening C{name} yields C{data} and a correctly named
    L{layerfs.interfaces.FileInfo}.
    """
    try:
        with fsys.open(name) as f:
            content = f.read()
            info = f.stat()
    except PathError as e:
        raise VerificationError(f"Failed to read file {name}") from e
    if content != data:
        raise VerificationError(f"Data for {name} does not match")
    if info.name != baseName(name):
        raise VerificationError(
            f"Fileinfo name for {name} does not match {info.name}"
        )


def verifyFilesystem(fsys: IFilesystem, files: Files) -> None:
    """
    Check the read operations of C{fsys} against the expected C{files}.

    Each file is opened, stat'ed and read, looked up in a listing of its
    directory, and matched by a glob on its extension.  The checks are then
    repeated on the view returned by C{sub} for every top level directory.

    @param files: Pairs of canonical paths and their expected content.
    """
    filesByDir: dict[str, dict[str, bytes]] = {}
    listings: dict[str, list[str]] = {}
    globbed = set()

    for name, data in _items(files):
        verifyFileOpen(fsys, name, data)

        try:
            info = fsys.stat(name)
            content = fsys.readFile(name)
        except PathError as e:
            raise VerificationError(f"Failed to stat or read {name}") from e
        if info.name != baseName(name):
            raise VerificationError(
                f"Fileinfo name for {name} does not match {info.name}"
            )
        if content != data:
            raise VerificationError(f"Data for {name} does not match")

        directory, sep, rest = name.partition("/")
        if sep:
            child = rest.partition("/")[0]
            filesByDir.setdefault(directory, {})[rest] = data
        else:
            directory, child = ".", name

        if directory not in listings:
            try:
                listings[directory] = [e.name for e in fsys.readDir(directory)]
            except PathError as e:
                raise VerificationError(
                    f"Failed to readdir {directory} for {name}"
                ) from e
        if child not in listings[directory]:
            raise VerificationError(
                f"Missing dir entry {child} in {directory} for {name}"
            )

        ancestors, base = posixpath.split(name)
        extension = posixpath.splitext(base)[1]
        if extension and ancestors not in globbed:
            globbed.add(ancestors)
            pattern = joinPath(ancestors or ".", "*" + extension)
            try:
                matches = fsys.glob(pattern)
            except PathError as e:
                raise VerificationError(
                    f"Failed to glob {pattern} for {name}"
                ) from e
            if name not in matches:
                raise VerificationError(f"Missing glob entry {name} in {pattern}")

    for directory in sorted(filesByDir):
        try:
            subdirectory = fsys.sub(directory)
        except PathError as e:
            raise VerificationError(f"Failed subdir {directory}") from e
        verifyFilesystem(subdirectory, filesByDir[directory])


def verifyFileWrite(fsys: IFilesystem, name: str, data: bytes) -> None:
    """
    Write C{data} to C{name} with L{dispatch.openFile}, then check it reads
    back as a regular file with the right name, size, modification time and
    content.
    """
    try:
        with dispatch.openFile(
            fsys,
            name,
            OpenFlags.WRITE | OpenFlags.CREATE | OpenFlags.TRUNCATE,
            dispatch.DEFAULT_FILE_MODE,
        ) as f:
            info = f.stat()
            if info.name != baseName(name):
                raise VerificationError(
                    f"Fileinfo name {info.name} does not match for {name}"
                )
            f.write(data)
    except PathError as e:
        raise VerificationError(f"Failed to write file {name}") from e

    try:
        with dispatch.openFile(fsys, name, OpenFlags.READ, 0) as f:
            info = f.stat()
            content = f.read()
    except PathError as e:
        raise VerificationError(f"Failed to read file {name}") from e
    if info.name != baseName(name):
        raise VerificationError(f"Fileinfo name {info.name} does not match for {name}")
    if not info.isRegular():
        raise VerificationError(f"Fileinfo mode is not a regular file for {name}")
    if info.size != len(data):
        raise VerificationError(f"Fileinfo size does not match data for {name}")
    if not info.modTime:
        raise VerificationError(f"Fileinfo modtime is unset for {name}")
    if content != data:
        raise VerificationError(f"File data does not match for {name}")


def verifyFileAppend(fsys: IFilesystem, name: str, data: bytes) -> None:
    """
    Append C{data} to the existing file C{name} and check that the result is
    the original content followed by C{data}.
    """
    try:
        original = fsys.readFile(name)
        with dispatch.openFile(
            fsys,
            name,
            OpenFlags.WRITE | OpenFlags.CREATE | OpenFlags.APPEND,
            dispatch.DEFAULT_FILE_MODE,
        ) as f:
            f.write(data)
        content = fsys.readFile(name)
    except PathError as e:
        raise VerificationError(f"Failed to append to file {name}") from e
    if content != original + data:
        raise VerificationError(f"File data does not match for {name}")
