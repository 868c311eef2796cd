# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Tests for L{layerfs.memory}.
"""

import stat

from twisted.internet.task import Clock
from twisted.trial.unittest import SynchronousTestCase

from layerfs import dispatch
from layerfs.error import ErrorKind
from layerfs.interfaces import OpenFlags
from layerfs.memory import FileRecord, MemoryFilesystem, MemorySubdirectory
from layerfs.test._helpers import ErrorKindAssertionsMixin
from layerfs.testing import verifyFileAppend, verifyFilesystem, verifyFileWrite

READ = OpenFlags.READ
WRITE = OpenFlags.WRITE
CREATE = OpenFlags.CREATE
EXCLUSIVE = OpenFlags.EXCLUSIVE
TRUNCATE = OpenFlags.TRUNCATE
APPEND = OpenFlags.APPEND


def seeded(clock=None):
    return MemoryFilesystem(
        {
            "foo.txt": FileRecord(b"hello, world", modTime=1.0),
            "bar/foobar.txt": FileRecord(b"foo bar", modTime=2.0),
            "bar/baz/deep.txt": FileRecord(b"deep", modTime=3.0),
        },
        clock=clock,
    )


class OpenFileTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for the flag handling of L{MemoryFilesystem.openFile}.
    """

    def setUp(self):
        self.clock = Clock()
        self.clock.advance(100)
        self.fsys = seeded(self.clock)

    def test_noAccessMode(self):
        """
        Flags without C{READ} or C{WRITE} are invalid.
        """
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "foo.txt", TRUNCATE, 0
        )

    def test_readWrite(self):
        """
        Reading and writing at once is not supported.
        """
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "foo.txt", READ | WRITE, 0
        )

    def test_exclusiveWithoutCreate(self):
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "foo.txt", WRITE | EXCLUSIVE, 0
        )

    def test_createWithoutWrite(self):
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "new.txt", READ | CREATE, 0
        )

    def test_missing(self):
        """
        Opening a missing file without C{CREATE} is L{ErrorKind.NOT_EXIST}.
        """
        for flags in [READ, WRITE, WRITE | TRUNCATE]:
            self.assertRaisesKind(
                ErrorKind.NOT_EXIST, self.fsys.openFile, "missing.txt", flags, 0
            )

    def test_exclusiveExisting(self):
        """
        C{CREATE | EXCLUSIVE} on an existing file is L{ErrorKind.EXIST}.
        """
        self.assertRaisesKind(
            ErrorKind.EXIST,
            self.fsys.openFile,
            "foo.txt",
            WRITE | CREATE | EXCLUSIVE,
            0o644,
        )

    def test_exclusiveNew(self):
        """
        C{CREATE | EXCLUSIVE} creates a missing file.
        """
        with self.fsys.openFile("new.txt", WRITE | CREATE | EXCLUSIVE, 0o644) as f:
            f.write(b"fresh")
        self.assertEqual(self.fsys.readFile("new.txt"), b"fresh")

    def test_createAppearsOnClose(self):
        """
        A created file appears when its handle is closed, with the requested
        permissions, a regular file type and the clock's time.
        """
        f = self.fsys.openFile("dir/new.txt", WRITE | CREATE, 0o600)
        self.assertEqual(f.stat().name, "new.txt")
        f.write(b"abc")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.stat, "dir/new.txt")
        self.clock.advance(5)
        f.close()
        info = self.fsys.stat("dir/new.txt")
        self.assertEqual(info.mode, stat.S_IFREG | 0o600)
        self.assertEqual(info.modTime, 105)
        self.assertEqual(info.size, 3)
        self.assertTrue(self.fsys.stat("dir").isDir())

    def test_readTruncate(self):
        """
        C{TRUNCATE} without C{WRITE} is invalid and leaves the file alone.
        """
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "foo.txt", READ | TRUNCATE, 0
        )
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world")

    def test_truncateAtOpen(self):
        """
        C{TRUNCATE} empties the file as soon as it is opened.
        """
        f = self.fsys.openFile("foo.txt", WRITE | TRUNCATE, 0)
        self.assertEqual(self.fsys.readFile("foo.txt"), b"")
        f.close()
        self.assertEqual(self.fsys.readFile("foo.txt"), b"")

    def test_readAppend(self):
        self.assertRaisesKind(
            ErrorKind.INVALID, self.fsys.openFile, "foo.txt", READ | APPEND, 0
        )

    def test_append(self):
        """
        C{APPEND} keeps the existing content in front of what is written.
        """
        with self.fsys.openFile("foo.txt", WRITE | APPEND, 0) as f:
            f.write(b"!!")
            f.write(b"?")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world!!?")

    def test_writeReplaces(self):
        """
        Without C{APPEND} the written content replaces the file on close,
        keeping its mode and refreshing its modification time.
        """
        self.fsys.files["foo.txt"].mode = stat.S_IFREG | 0o640
        with self.fsys.openFile("foo.txt", WRITE, 0) as f:
            f.write(b"J")
        info = self.fsys.stat("foo.txt")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"J")
        self.assertEqual(info.mode, stat.S_IFREG | 0o640)
        self.assertEqual(info.modTime, 100)

    def test_lastCloseWins(self):
        """
        Of two handles writing the same file, the one closed last wins.
        """
        first = self.fsys.openFile("foo.txt", WRITE, 0)
        second = self.fsys.openFile("foo.txt", WRITE, 0)
        second.write(b"second")
        first.write(b"first")
        second.close()
        first.close()
        self.assertEqual(self.fsys.readFile("foo.txt"), b"first")

    def test_directory(self):
        """
        Directories cannot be opened for writing.
        """
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.openFile, "bar", WRITE, 0)

    def test_invalidPath(self):
        self.assertRaisesKind(
            ErrorKind.INVALID_PATH, self.fsys.openFile, "./foo.txt", READ, 0
        )


class MemoryFileTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for L{layerfs.memory.MemoryFile}.
    """

    def setUp(self):
        self.fsys = seeded()

    def test_readSnapshot(self):
        """
        A file opened for reading sees the content as it was when opened.
        """
        f = self.fsys.open("foo.txt")
        dispatch.writeFile(self.fsys, "foo.txt", b"changed")
        self.assertEqual(f.read(5), b"hello")
        self.assertEqual(f.read(), b", world")
        self.assertEqual(f.seek(0), 0)
        self.assertEqual(f.read(), b"hello, world")

    def test_wrongDirection(self):
        """
        Reading a write handle or writing a read handle is invalid.
        """
        reader = self.fsys.openFile("foo.txt", READ, 0)
        writer = self.fsys.openFile("foo.txt", WRITE | APPEND, 0)
        self.assertRaisesKind(ErrorKind.INVALID, reader.write, b"x")
        self.assertRaisesKind(ErrorKind.INVALID, writer.read)
        self.assertRaisesKind(ErrorKind.INVALID, writer.seek, 0)

    def test_closed(self):
        """
        A closed handle cannot be used, and closing it again does nothing.
        """
        f = self.fsys.openFile("foo.txt", WRITE | APPEND, 0)
        f.close()
        f.close()
        self.assertRaisesKind(ErrorKind.INVALID, f.write, b"x")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world")

    def test_directoryRead(self):
        """
        Directories cannot be opened for reading either.
        """
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.open, "bar")
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.openFile, "bar", READ, 0)

    def test_stat(self):
        f = self.fsys.open("bar/foobar.txt")
        info = f.stat()
        self.assertEqual(info.name, "foobar.txt")
        self.assertEqual(info.size, 7)


class ReadTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for the read operations of L{MemoryFilesystem}.
    """

    def setUp(self):
        self.fsys = seeded()

    def test_conformance(self):
        verifyFilesystem(
            self.fsys,
            {
                "foo.txt": b"hello, world",
                "bar/foobar.txt": b"foo bar",
                "bar/baz/deep.txt": b"deep",
            },
        )

    def test_statName(self):
        """
        The name of a L{FileInfo} is the last segment of the path.
        """
        for name in ["foo.txt", "bar", "bar/baz", "bar/baz/deep.txt"]:
            self.assertEqual(self.fsys.stat(name).name, name.split("/")[-1])
        self.assertEqual(self.fsys.stat(".").name, ".")

    def test_implicitDirectory(self):
        info = self.fsys.stat("bar/baz")
        self.assertTrue(info.isDir())
        self.assertEqual(info.mode, stat.S_IFDIR | 0o555)

    def test_explicitEmptyDirectory(self):
        """
        A record with a directory mode is an empty directory.
        """
        self.fsys.files["empty"] = FileRecord(mode=stat.S_IFDIR | 0o755)
        self.assertEqual(self.fsys.readDir("empty"), [])
        self.assertIn("empty", [e.name for e in self.fsys.readDir(".")])

    def test_readDir(self):
        """
        Directory listings hold each child once, sorted by name.
        """
        self.fsys.files["bar/a.txt"] = FileRecord(b"a")
        entries = self.fsys.readDir("bar")
        self.assertEqual([e.name for e in entries], ["a.txt", "baz", "foobar.txt"])
        self.assertEqual([e.isDir() for e in entries], [False, True, False])
        self.assertEqual(
            [e.name for e in self.fsys.readDir(".")], ["bar", "foo.txt"]
        )

    def test_readDirErrors(self):
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.readDir, "nope")
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.readDir, "foo.txt")
        self.assertRaisesKind(ErrorKind.INVALID_PATH, self.fsys.readDir, "bar/")

    def test_readFileErrors(self):
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.readFile, "nope")
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.readFile, "bar")
        self.assertRaisesKind(ErrorKind.INVALID_PATH, self.fsys.readFile, "/foo.txt")

    def test_glob(self):
        self.assertEqual(self.fsys.glob("*.txt"), ["foo.txt"])
        self.assertEqual(self.fsys.glob("*/*.txt"), ["bar/foobar.txt"])
        self.assertEqual(self.fsys.glob("bar/*/d*"), ["bar/baz/deep.txt"])
        self.assertEqual(self.fsys.glob("foo.txt"), ["foo.txt"])
        self.assertEqual(self.fsys.glob("missing.txt"), [])
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.glob, "/*")


class SubTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for L{MemorySubdirectory}.
    """

    def setUp(self):
        self.fsys = seeded()

    def test_readFile(self):
        sub = self.fsys.sub("bar")
        self.assertIsInstance(sub, MemorySubdirectory)
        self.assertEqual(sub.readFile("foobar.txt"), b"foo bar")

    def test_root(self):
        self.assertIs(self.fsys.sub("."), self.fsys)
        self.assertRaisesKind(ErrorKind.INVALID_PATH, self.fsys.sub, "../x")

    def test_nested(self):
        """
        Views of views compose their prefixes.
        """
        sub = self.fsys.sub("bar").sub("baz")
        self.assertEqual(sub.readFile("deep.txt"), b"deep")
        self.assertEqual(sub.glob("*.txt"), ["deep.txt"])

    def test_writeThrough(self):
        """
        Writes through a view land in the backend without copying.
        """
        sub = self.fsys.sub("bar")
        verifyFileWrite(sub, "new.txt", b"new")
        verifyFileAppend(sub, "new.txt", b" and more")
        self.assertEqual(self.fsys.readFile("bar/new.txt"), b"new and more")
        sub.remove("new.txt")
        self.assertNotIn("bar/new.txt", self.fsys.files)

    def test_invalidPath(self):
        sub = self.fsys.sub("bar")
        self.assertRaisesKind(ErrorKind.INVALID_PATH, sub.readFile, "../foo.txt")
        self.assertRaisesKind(ErrorKind.INVALID_PATH, sub.removeAll, "")

    def test_linkEscapingView(self):
        """
        A link target inside the backend but outside the view is rejected by
        the view.
        """
        self.fsys.symlink("../foo.txt", "bar/link")
        self.assertEqual(self.fsys.readLink("bar/link"), "../foo.txt")
        self.assertRaisesKind(
            ErrorKind.TARGET_OUTSIDE_FS, self.fsys.sub("bar").readLink, "link"
        )

    def test_followEscapingView(self):
        """
        Following a link out of a view is rejected as well, so the view
        cannot read or change files outside of it.
        """
        self.fsys.files["secret.txt"] = FileRecord(b"top secret")
        self.fsys.symlink("../secret.txt", "bar/link")
        sub = self.fsys.sub("bar")
        self.assertRaisesKind(ErrorKind.TARGET_OUTSIDE_FS, sub.readFile, "link")
        self.assertRaisesKind(ErrorKind.TARGET_OUTSIDE_FS, sub.open, "link")
        self.assertRaisesKind(ErrorKind.TARGET_OUTSIDE_FS, sub.stat, "link")
        self.assertRaisesKind(
            ErrorKind.TARGET_OUTSIDE_FS, sub.openFile, "link", WRITE | TRUNCATE, 0
        )
        self.assertRaisesKind(
            ErrorKind.TARGET_OUTSIDE_FS, sub.chtimes, "link", None, 5.0
        )
        self.assertEqual(self.fsys.readFile("secret.txt"), b"top secret")
        self.assertEqual(self.fsys.readFile("bar/link"), b"top secret")

    def test_followChainInsideView(self):
        """
        Links whose targets stay inside the view are followed.
        """
        self.fsys.symlink("foobar.txt", "bar/first")
        self.fsys.symlink("first", "bar/second")
        sub = self.fsys.sub("bar")
        self.assertEqual(sub.readFile("second"), b"foo bar")
        self.assertEqual(sub.stat("second").name, "second")
        self.assertTrue(sub.lstat("second").isSymlink())


class RemoveTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for L{MemoryFilesystem.remove} and L{MemoryFilesystem.removeAll}.
    """

    def setUp(self):
        self.fsys = seeded()

    def test_remove(self):
        self.fsys.remove("foo.txt")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.stat, "foo.txt")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.remove, "foo.txt")

    def test_removeImplicitDirectory(self):
        """
        An implicit directory has no record to remove.
        """
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.remove, "bar")

    def test_removeAll(self):
        """
        Removing a subtree leaves siblings alone.
        """
        self.fsys.files["barn.txt"] = FileRecord(b"barn")
        self.fsys.removeAll("bar")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.stat, "bar")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.stat, "bar/foobar.txt")
        self.assertEqual(self.fsys.readFile("barn.txt"), b"barn")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world")

    def test_removeAllMissing(self):
        self.fsys.removeAll("nothing/here")
        self.assertRaisesKind(ErrorKind.INVALID_PATH, self.fsys.removeAll, "/")

    def test_removeAllRoot(self):
        self.fsys.removeAll(".")
        self.assertEqual(self.fsys.readDir("."), [])


class ChtimesTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for L{MemoryFilesystem.chtimes}.
    """

    def test_chtimes(self):
        fsys = seeded()
        fsys.chtimes("foo.txt", None, 1234.5)
        self.assertEqual(fsys.stat("foo.txt").modTime, 1234.5)
        fsys.chtimes("foo.txt", 99.0, None)
        self.assertEqual(fsys.stat("foo.txt").modTime, 1234.5)

    def test_missing(self):
        self.assertRaisesKind(
            ErrorKind.NOT_EXIST, seeded().chtimes, "nope", None, 1.0
        )


class SymlinkTests(SynchronousTestCase, ErrorKindAssertionsMixin):
    """
    Tests for symbolic links in L{MemoryFilesystem}.
    """

    def setUp(self):
        self.fsys = seeded()

    def test_readLink(self):
        self.fsys.symlink("foobar.txt", "bar/link.txt")
        self.assertEqual(self.fsys.readLink("bar/link.txt"), "foobar.txt")

    def test_follow(self):
        """
        C{stat} and C{readFile} follow links; C{lstat} does not.
        """
        self.fsys.symlink("foobar.txt", "bar/link.txt")
        self.assertEqual(self.fsys.readFile("bar/link.txt"), b"foo bar")
        info = self.fsys.stat("bar/link.txt")
        self.assertEqual(info.name, "link.txt")
        self.assertTrue(info.isRegular())
        self.assertTrue(self.fsys.lstat("bar/link.txt").isSymlink())

    def test_writeThroughLink(self):
        self.fsys.symlink("../foo.txt", "bar/link.txt")
        with self.fsys.openFile("bar/link.txt", WRITE | APPEND, 0) as f:
            f.write(b"!")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world!")
        self.assertTrue(self.fsys.lstat("bar/link.txt").isSymlink())

    def test_outside(self):
        """
        Links escaping the root are L{ErrorKind.TARGET_OUTSIDE_FS} whether
        read or followed.
        """
        self.fsys.symlink("../outside.txt", "link.txt")
        self.fsys.symlink("/etc/passwd", "abs.txt")
        for name in ["link.txt", "abs.txt"]:
            self.assertRaisesKind(
                ErrorKind.TARGET_OUTSIDE_FS, self.fsys.readLink, name
            )
            self.assertRaisesKind(ErrorKind.TARGET_OUTSIDE_FS, self.fsys.stat, name)

    def test_loop(self):
        self.fsys.symlink("b", "a")
        self.fsys.symlink("a", "b")
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.readFile, "a")

    def test_notALink(self):
        self.assertRaisesKind(ErrorKind.INVALID, self.fsys.readLink, "foo.txt")
        self.assertRaisesKind(ErrorKind.NOT_EXIST, self.fsys.readLink, "nope")

    def test_existing(self):
        self.assertRaisesKind(ErrorKind.EXIST, self.fsys.symlink, "x", "foo.txt")

    def test_removeLink(self):
        """
        Removing a link leaves its target alone.
        """
        self.fsys.symlink("foo.txt", "link")
        self.fsys.remove("link")
        self.assertEqual(self.fsys.readFile("foo.txt"), b"hello, world")


class VerifyTests(SynchronousTestCase):
    """
    L{MemoryFilesystem} passes the write conformance checks.
    """

    def test_writeAndAppend(self):
        fsys = MemoryFilesystem()
        verifyFileWrite(fsys, "a/b/c.txt", b"data")
        verifyFileAppend(fsys, "a/b/c.txt", b"more")
        self.assertEqual(fsys.readFile("a/b/c.txt"), b"datamore")
