"""CLI smoke tests: each subcommand run in-process inside a temp project."""

from __future__ import annotations

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from envscope.cli.main import main
from envscope.logging_utils import reset_logger


class CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        base = Path(os.path.realpath(self._tmpdir.name))
        self.proj = base / "proj"
        self.sub = self.proj / "sub"
        self.sub.mkdir(parents=True)
        (self.proj / ".envscope").write_text("")

        self._env = mock.patch.dict(
            os.environ,
            {
                "ENVSCOPE_DB_PATH": str(base / "data" / "envscope.db"),
                "ENVSCOPE_LOG_DIR": str(base / "logs"),
                "ENVSCOPE_CONFIG": str(base / "no-config.env"),
                "ENVSCOPE_LOG_LEVEL": "ERROR",
                "COLUMNS": "250",
            },
        )
        self._env.start()
        for var in ("ENVSCOPE_PROFILE", "__ENVSCOPE_LOADED_KEYS", "__ENVSCOPE_LOADED_PATH"):
            os.environ.pop(var, None)

        self._old_cwd = os.getcwd()
        os.chdir(self.proj)

    def tearDown(self) -> None:
        os.chdir(self._old_cwd)
        reset_logger("envscope")
        self._env.stop()
        self._tmpdir.cleanup()

    def run_cli(self, *argv: str):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()


class SetLsUnsetTests(CliTestCase):
    def test_set_then_ls(self) -> None:
        self.assertEqual(self.run_cli("set", "API_URL=http://localhost:8080/#x")[0], 0)
        code, out, _ = self.run_cli("ls")
        self.assertEqual(code, 0)
        self.assertEqual(out, "API_URL=http://localhost:8080/#x\n")

    def test_child_inherits_and_overrides(self) -> None:
        self.run_cli("set", "A=root")
        self.run_cli("set", "B=root")
        os.chdir(self.sub)
        self.run_cli("set", "B=child", "-d", "closer wins")
        code, out, _ = self.run_cli("ls")
        self.assertEqual(out.splitlines(), ["A=root", "B=child"])

        code, out, _ = self.run_cli("ls", "--long")
        self.assertEqual(code, 0)
        self.assertIn("closer wins", out)
        self.assertIn(str(self.proj), out)

    def test_invalid_key(self) -> None:
        code, _, err = self.run_cli("set", "KEY-NAME=x")
        self.assertEqual(code, 1)
        self.assertIn("envscope: invalid key", err)

    def test_missing_equals(self) -> None:
        code, _, err = self.run_cli("set", "JUSTAKEY")
        self.assertEqual(code, 1)
        self.assertIn("expected KEY=VALUE", err)

    def test_unset(self) -> None:
        self.run_cli("set", "A=1")
        self.assertEqual(self.run_cli("unset", "A")[0], 0)
        self.assertEqual(self.run_cli("ls")[1], "")

    def test_unset_several_keys(self) -> None:
        for assignment in ("A=1", "B=2", "C=3"):
            self.run_cli("set", assignment)
        code, _, err = self.run_cli("unset", "A", "C", "A")
        self.assertEqual(code, 0)
        self.assertIn("unset A C", err)
        self.assertEqual(self.run_cli("ls")[1], "B=2\n")

    def test_unset_with_unknown_key_deletes_nothing(self) -> None:
        self.run_cli("set", "A=1")
        code, _, err = self.run_cli("unset", "A", "NOPE")
        self.assertEqual(code, 1)
        self.assertIn("NOPE not set in this directory", err)
        self.assertEqual(self.run_cli("ls")[1], "A=1\n")

    def test_unset_inherited_fails(self) -> None:
        self.run_cli("set", "A=1")
        os.chdir(self.sub)
        code, _, err = self.run_cli("unset", "A")
        self.assertEqual(code, 1)
        self.assertIn("not set in this directory", err)

    def test_profiles(self) -> None:
        self.run_cli("--profile", "prod", "set", "A=prod")
        self.assertEqual(self.run_cli("ls")[1], "")
        self.assertEqual(self.run_cli("--profile", "prod", "ls")[1], "A=prod\n")
        with mock.patch.dict(os.environ, {"ENVSCOPE_PROFILE": "prod"}):
            self.assertEqual(self.run_cli("ls")[1], "A=prod\n")


class ExportHookTests(CliTestCase):
    def test_export_lines(self) -> None:
        self.run_cli("set", "GREETING=it's here")
        code, out, err = self.run_cli("export")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "export GREETING='it'\\''s here'")
        self.assertIn("export __ENVSCOPE_LOADED_KEYS='GREETING'", lines)
        self.assertIn("loaded 1 var(s)", err)

    def test_export_unsets_after_leaving(self) -> None:
        with mock.patch.dict(
            os.environ,
            {"__ENVSCOPE_LOADED_KEYS": "OLD", "__ENVSCOPE_LOADED_PATH": "/somewhere"},
        ):
            code, out, _ = self.run_cli("export")
        self.assertEqual(code, 0)
        self.assertEqual(
            out.splitlines(),
            ["unset OLD", "unset __ENVSCOPE_LOADED_KEYS", "unset __ENVSCOPE_LOADED_PATH"],
        )

    def test_hook(self) -> None:
        code, out, _ = self.run_cli("hook", "zsh")
        self.assertEqual(code, 0)
        self.assertIn("add-zsh-hook precmd", out)

    def test_hook_unknown_shell(self) -> None:
        code, _, err = self.run_cli("hook", "tcsh")
        self.assertEqual(code, 1)
        self.assertIn("unsupported shell", err)


class EditRunTests(CliTestCase):
    def test_edit_replaces_local_values(self) -> None:
        self.run_cli("set", "KEEP=1")
        self.run_cli("set", "DROP=2")

        def fake_editor(argv):
            path = argv[-1]
            with open(path, encoding="utf-8") as fh:
                self.assertIn("KEEP='1'", fh.read())
            with open(path, "w", encoding="utf-8") as fh:
                fh.write("KEEP='1'\nNEW='x y'  # added in editor\n")
            return 0

        with mock.patch.dict(os.environ, {"EDITOR": "myeditor --wait", "VISUAL": ""}), mock.patch(
            "envscope.cli.main.subprocess.call", side_effect=fake_editor
        ) as call:
            code, _, err = self.run_cli("edit")
        self.assertEqual(code, 0, err)
        self.assertEqual(call.call_args[0][0][:2], ["myeditor", "--wait"])
        self.assertEqual(self.run_cli("ls")[1].splitlines(), ["KEEP=1", "NEW=x y"])

    def test_edit_with_invalid_line_changes_nothing(self) -> None:
        self.run_cli("set", "KEEP=1")

        def fake_editor(argv):
            with open(argv[-1], "w", encoding="utf-8") as fh:
                fh.write("this is not an assignment\n")
            return 0

        with mock.patch("envscope.cli.main.subprocess.call", side_effect=fake_editor):
            code, _, err = self.run_cli("edit")
        self.assertEqual(code, 1)
        self.assertIn("this is not an assignment", err)
        self.assertEqual(self.run_cli("ls")[1], "KEEP=1\n")

    def test_edit_aborted_by_editor(self) -> None:
        self.run_cli("set", "KEEP=1")
        with mock.patch("envscope.cli.main.subprocess.call", return_value=1):
            code, _, err = self.run_cli("edit")
        self.assertEqual(code, 1)
        self.assertIn("editor exited with status 1", err)
        self.assertEqual(self.run_cli("ls")[1], "KEEP=1\n")

    def test_edit_when_editor_removes_the_file(self) -> None:
        self.run_cli("set", "KEEP=1")

        def fake_editor(argv):
            os.unlink(argv[-1])
            return 0

        with mock.patch("envscope.cli.main.subprocess.call", side_effect=fake_editor):
            code, _, err = self.run_cli("edit")
        self.assertEqual(code, 1)
        self.assertIn("envscope: cannot read edited file", err)
        self.assertNotIn("Traceback", err)
        self.assertEqual(self.run_cli("ls")[1], "KEEP=1\n")

    def test_run_execs_with_merged_environment(self) -> None:
        self.run_cli("set", "A=1")
        with mock.patch("envscope.cli.main.os.execvpe") as execvpe:
            code, _, _ = self.run_cli("run", "--", "printenv", "A")
        self.assertEqual(code, 0)
        name, argv, env = execvpe.call_args[0]
        self.assertEqual((name, argv), ("printenv", ["printenv", "A"]))
        self.assertEqual(env["A"], "1")
        self.assertIn("ENVSCOPE_DB_PATH", env)

    def test_run_without_command(self) -> None:
        code, _, err = self.run_cli("run")
        self.assertEqual(code, 1)
        self.assertIn("no command given", err)

    def test_run_missing_program(self) -> None:
        with mock.patch("envscope.cli.main.os.execvpe", side_effect=FileNotFoundError(2, "No such file or directory")):
            code, _, err = self.run_cli("run", "--", "does-not-exist")
        self.assertEqual(code, 1)
        self.assertIn("does-not-exist", err)


class UsageTests(CliTestCase):
    def test_no_subcommand(self) -> None:
        code, _, err = self.run_cli()
        self.assertEqual(code, 2)
        self.assertIn("usage: envscope", err)


if __name__ == "__main__":
    unittest.main()
