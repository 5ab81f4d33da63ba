"""End-to-end resolution over a temp directory tree and a temp database."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path

from envscope.config import Settings
from envscope.errors import ResolveError
from envscope.resolve import Resolver, merge_chain
from envscope.store import Store, StoredValue


class ResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        base = Path(os.path.realpath(self._tmpdir.name))
        self.proj = base / "proj"
        self.child = self.proj / "child"
        self.grandchild = self.child / "grandchild"
        self.grandchild.mkdir(parents=True)
        (self.proj / ".envscope").write_text("")

        self.store = Store(Settings(db_path=str(base / "db" / "envscope.db"), log_dir=str(base / "logs")))
        self.resolver = Resolver(self.store)

    def tearDown(self) -> None:
        self.store.close()
        self._tmpdir.cleanup()

    def test_inheritance_and_override(self) -> None:
        self.resolver.set_value(str(self.proj), "ROOT_VAR", "root")
        self.resolver.set_value(str(self.proj), "SHARED", "from-root")
        self.resolver.set_value(str(self.child), "SHARED", "from-child")

        ctx = self.resolver.resolve(str(self.grandchild))
        self.assertEqual(ctx.root, str(self.proj))
        self.assertEqual(ctx.chain, (str(self.proj), str(self.child), str(self.grandchild)))

        root_var = ctx.get("ROOT_VAR")
        self.assertEqual(root_var.value, "root")
        self.assertEqual(root_var.scope, str(self.proj))
        self.assertFalse(root_var.overridden)
        self.assertIsNone(root_var.override_origin)

        shared = ctx.get("SHARED")
        self.assertEqual(shared.value, "from-child")
        self.assertEqual(shared.scope, str(self.child))
        self.assertTrue(shared.overridden)
        self.assertEqual(shared.override_origin, str(self.proj))

        self.assertEqual(ctx.local_values(), [])

    def test_override_origin_is_nearest_replaced_definer(self) -> None:
        for d, v in ((self.proj, "1"), (self.child, "2"), (self.grandchild, "3")):
            self.resolver.set_value(str(d), "K", v)
        k = self.resolver.resolve(str(self.grandchild)).get("K")
        self.assertEqual(k.value, "3")
        self.assertEqual(k.override_origin, str(self.child))

    def test_values_outside_chain_are_ignored(self) -> None:
        sibling = self.proj / "sibling"
        sibling.mkdir()
        self.resolver.set_value(str(sibling), "SIBLING", "x")
        self.assertIsNone(self.resolver.resolve(str(self.grandchild)).get("SIBLING"))

    def test_values_above_root_are_ignored(self) -> None:
        self.resolver.set_value(str(self.proj.parent), "ABOVE", "x")
        self.assertIsNone(self.resolver.resolve(str(self.child)).get("ABOVE"))

    def test_local_and_sorted_views(self) -> None:
        self.resolver.set_value(str(self.proj), "B", "inherited")
        self.resolver.set_value(str(self.child), "A", "local", "a note")
        ctx = self.resolver.resolve(str(self.child))
        self.assertEqual([v.key for v in ctx.sorted_values()], ["A", "B"])
        self.assertEqual([v.key for v in ctx.local_values()], ["A"])
        self.assertTrue(ctx.is_local(ctx.get("A")))
        self.assertFalse(ctx.is_local(ctx.get("B")))
        self.assertEqual(ctx.get("A").description, "a note")

    def test_profile_isolation(self) -> None:
        self.resolver.set_value(str(self.proj), "A", "dev")
        prod = Resolver(self.store, "prod")
        self.assertIsNone(prod.resolve(str(self.proj)).get("A"))
        self.assertEqual(prod.resolve(str(self.proj)).profile, "prod")

    def test_symlinked_directory_addresses_same_scope(self) -> None:
        link = self.proj.parent / "link"
        link.symlink_to(self.child, target_is_directory=True)
        self.resolver.set_value(str(link), "VIA_LINK", "1")
        ctx = self.resolver.resolve(str(self.child))
        self.assertTrue(ctx.is_local(ctx.get("VIA_LINK")))

    def test_context_is_a_snapshot(self) -> None:
        ctx = self.resolver.resolve(str(self.child))
        self.resolver.set_value(str(self.child), "LATER", "x")
        self.assertIsNone(ctx.get("LATER"))
        with self.assertRaises(TypeError):
            ctx.values["LATER"] = None  # type: ignore[index]

    def test_missing_directory_raises_resolve_error(self) -> None:
        with self.assertRaises(ResolveError) as ctx:
            self.resolver.resolve(str(self.proj / "gone"))
        self.assertEqual(ctx.exception.directory, str(self.proj / "gone"))

    def test_local_entry_ignores_inherited_values(self) -> None:
        self.resolver.set_value(str(self.proj), "A", "root")
        self.resolver.set_value(str(self.child), "B", "child", "note")
        link = self.proj.parent / "link"
        link.symlink_to(self.child, target_is_directory=True)
        self.assertIsNone(self.resolver.local_entry(str(self.child), "A"))
        entry = self.resolver.local_entry(str(link), "B")
        self.assertEqual((entry.path, entry.value, entry.description), (str(self.child), "child", "note"))

    def test_delete_values_batch(self) -> None:
        self.resolver.set_values_batch(str(self.child), {"A": "1", "B": "2", "C": "3"})
        self.resolver.delete_values_batch(str(self.child), ["A", "C"])
        self.assertEqual(list(self.resolver.local_entries(str(self.child))), ["B"])

    def test_replace_local(self) -> None:
        self.resolver.set_values_batch(str(self.child), {"A": "1", "B": "2"})
        self.resolver.replace_local(str(self.child), {"B": "3"})
        self.assertEqual(
            {k: v.value for k, v in self.resolver.local_entries(str(self.child)).items()},
            {"B": "3"},
        )


class MergeChainTests(unittest.TestCase):
    def test_rows_outside_chain_are_skipped(self) -> None:
        rows = [
            StoredValue("/a", "default", "K", "1"),
            StoredValue("/x", "default", "K", "2"),
        ]
        merged = merge_chain(["/a"], rows)
        self.assertEqual(merged["K"].value, "1")


if __name__ == "__main__":
    unittest.main()
