# -*- test-case-name: layerfs -*-
# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
layerfs: composable virtual filesystems.

Backends: L{layerfs.osfs.OSFilesystem} and L{layerfs.memory.MemoryFilesystem}.
Decorators: L{layerfs.masking.MaskingFilesystem} and
L{layerfs.readonly.ReadOnlyFilesystem}.  Optional capabilities are invoked
through L{layerfs.dispatch}.
"""

from layerfs.dispatch import (
    chtimes,
    fullFilePath,
    lstat,
    openFile,
    readLink,
    remove,
    removeAll,
    writeFile,
)
from layerfs.error import ErrorKind, PathError, isKind
from layerfs.interfaces import FileInfo, OpenFlags
from layerfs.masking import MaskingFilesystem
from layerfs.memory import FileRecord, MemoryFilesystem
from layerfs.osfs import OSFilesystem
from layerfs.readonly import ReadOnlyFilesystem

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "PathError",
    "isKind",
    "FileInfo",
    "OpenFlags",
    "FileRecord",
    "MemoryFilesystem",
    "OSFilesystem",
    "MaskingFilesystem",
    "ReadOnlyFilesystem",
    "chtimes",
    "fullFilePath",
    "lstat",
    "openFile",
    "readLink",
    "remove",
    "removeAll",
    "writeFile",
]
