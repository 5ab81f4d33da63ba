"""Canonicalization, root discovery and chain building on real directory trees."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from envscope.errors import PathError
from envscope.resolve import build_chain, canonicalize, find_root


class CanonicalizeTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self._tmpdir.name))

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_idempotent(self) -> None:
        d = self.base / "a" / "b"
        d.mkdir(parents=True)
        once = canonicalize(str(d))
        self.assertEqual(once, str(d))
        self.assertEqual(canonicalize(once), once)

    def test_dot_segments_collapse(self) -> None:
        (self.base / "a" / "b").mkdir(parents=True)
        self.assertEqual(canonicalize(str(self.base / "a" / "b" / ".." / "b")), str(self.base / "a" / "b"))

    def test_symlink_resolves_to_target(self) -> None:
        real = self.base / "real"
        real.mkdir()
        link = self.base / "link"
        link.symlink_to(real, target_is_directory=True)
        self.assertEqual(canonicalize(str(link)), str(real))

    def test_relative_path_uses_cwd(self) -> None:
        (self.base / "rel").mkdir()
        old = os.getcwd()
        os.chdir(self.base)
        try:
            self.assertEqual(canonicalize("rel"), str(self.base / "rel"))
        finally:
            os.chdir(old)

    def test_missing_path_raises(self) -> None:
        with self.assertRaises(PathError) as ctx:
            canonicalize(str(self.base / "nope"))
        self.assertEqual(ctx.exception.path, str(self.base / "nope"))

    def test_empty_path_raises(self) -> None:
        with self.assertRaises(PathError):
            canonicalize("")

    def test_symlink_loop_raises(self) -> None:
        a = self.base / "loop_a"
        b = self.base / "loop_b"
        a.symlink_to(b)
        b.symlink_to(a)
        with self.assertRaises(PathError):
            canonicalize(str(a))


class FindRootTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self._tmpdir.name))
        self.proj = self.base / "proj"
        self.deep = self.proj / "src" / "pkg"
        self.deep.mkdir(parents=True)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_marker_file_makes_root(self) -> None:
        (self.proj / ".envscope").write_text("")
        self.assertEqual(find_root(str(self.deep)), str(self.proj))

    def test_git_directory_makes_root(self) -> None:
        (self.proj / ".git").mkdir()
        self.assertEqual(find_root(str(self.deep)), str(self.proj))

    def test_closest_wins(self) -> None:
        (self.proj / ".git").mkdir()
        (self.proj / "src" / ".envscope").write_text("")
        self.assertEqual(find_root(str(self.deep)), str(self.proj / "src"))

    def test_closer_git_beats_farther_marker(self) -> None:
        (self.proj / ".envscope").write_text("")
        (self.proj / "src" / ".git").mkdir()
        self.assertEqual(find_root(str(self.deep)), str(self.proj / "src"))

    def test_marker_and_git_in_same_directory(self) -> None:
        (self.proj / ".envscope").write_text("")
        (self.proj / ".git").mkdir()
        self.assertEqual(find_root(str(self.deep)), str(self.proj))

    def test_marker_directory_and_git_file_do_not_count(self) -> None:
        (self.proj / "src" / ".envscope").mkdir()
        (self.proj / "src" / ".git").write_text("gitdir: elsewhere\n")
        (self.proj / ".envscope").write_text("")
        self.assertEqual(find_root(str(self.deep)), str(self.proj))

    def test_directory_itself_can_be_root(self) -> None:
        (self.deep / ".envscope").write_text("")
        self.assertEqual(find_root(str(self.deep)), str(self.deep))

    def test_filesystem_root(self) -> None:
        self.assertEqual(find_root("/"), "/")


class BuildChainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self._tmpdir.name))
        self.deep = self.base / "a" / "b" / "c"
        self.deep.mkdir(parents=True)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_root_to_target_inclusive(self) -> None:
        chain = build_chain(str(self.base / "a"), str(self.deep))
        self.assertEqual(
            chain,
            [str(self.base / "a"), str(self.base / "a" / "b"), str(self.deep)],
        )

    def test_same_directory(self) -> None:
        self.assertEqual(build_chain(str(self.deep), str(self.deep)), [str(self.deep)])

    def test_non_ancestor_stops_at_filesystem_root(self) -> None:
        other = self.base / "other"
        other.mkdir()
        chain = build_chain(str(other), str(self.deep))
        self.assertEqual(chain[0], "/")
        self.assertEqual(chain[-1], str(self.deep))
        self.assertNotIn(str(other), chain)

    def test_chain_entries_are_canonical(self) -> None:
        link = self.base / "alias"
        link.symlink_to(self.base / "a", target_is_directory=True)
        chain = build_chain(str(link), str(link / "b"))
        self.assertEqual(chain, [str(self.base / "a"), str(self.base / "a" / "b")])


if __name__ == "__main__":
    unittest.main()
