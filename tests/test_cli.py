from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch
import io
import os
import tempfile
import textwrap
import unittest

from cmake_driver import cli

LINUX = "x86_64-unknown-linux-gnu"


class ExtraSwitchTests(unittest.TestCase):
    def test_scoped_and_unscoped_switches(self) -> None:
        config_args, build_args = cli._parse_extra_switches(
            ["config,-Wno-dev", "build,-v", "--trace", "", "  ", "build,"]
        )
        self.assertEqual(config_args, ["-Wno-dev", "--trace"])
        self.assertEqual(build_args, ["-v"])

    def test_commas_inside_an_argument_are_kept(self) -> None:
        config_args, build_args = cli._parse_extra_switches(
            ["config,-DCMAKE_EXE_LINKER_FLAGS=-Wl,--as-needed", "build,-j,8"]
        )
        self.assertEqual(config_args, ["-DCMAKE_EXE_LINKER_FLAGS=-Wl,--as-needed"])
        self.assertEqual(build_args, ["-j,8"])

    def test_unscoped_define_never_reaches_the_native_tool(self) -> None:
        config_args, build_args = cli._parse_extra_switches(["-DFOO=1", "-DLIST=a,b"])
        self.assertEqual(config_args, ["-DFOO=1", "-DLIST=a,b"])
        self.assertEqual(build_args, [])


class BuildCommandDryRunTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name).resolve()
        self.source = self.workspace / "libfoo"
        self.source.mkdir()
        self.env = {
            "TARGET": LINUX,
            "HOST": LINUX,
            "PROFILE": "release",
            "OPT_LEVEL": "0",
            "DEBUG": "true",
            "PATH": "",
        }

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _main(self, argv: list[str]) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with patch.dict(os.environ, self.env, clear=True), redirect_stdout(stdout), redirect_stderr(stderr):
            code = cli.main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_build_dry_run_outputs_formatted_commands(self) -> None:
        code, output, _ = self._main(
            [
                "build",
                str(self.source),
                "--out-dir",
                str(self.workspace / "out"),
                "-D",
                "FOO=1",
                "-G",
                "Ninja",
                "-X",
                "build,-v",
                "--dry-run",
            ]
        )
        self.assertEqual(code, 0)
        self.assertFalse((self.workspace / "out").exists())
        build_dir = self.workspace / "out" / "build"
        self.assertIn(f"[dry-run] configure (cwd={build_dir}) cmake {self.source} -G Ninja -DFOO=1", output)
        self.assertIn(
            f"[dry-run] build (cwd={build_dir}) cmake --build . -j 4 --target install --config Debug -- -v",
            output,
        )

    def test_config_file_options(self) -> None:
        config_file = self.workspace / "cmake-driver.toml"
        config_file.write_text(
            textwrap.dedent(
                """
                [cmake]
                source = "libfoo"
                out_dir = "out"
                profile = "RelWithDebInfo"
                build_target = "all"
                """
            )
        )
        code, output, _ = self._main(["build", "-c", str(config_file), "--very-verbose", "-n"])
        self.assertEqual(code, 0)
        self.assertIn("-DCMAKE_VERBOSE_MAKEFILE:BOOL=ON", output)
        self.assertIn("--target all --config RelWithDebInfo", output)
        self.assertIn(f"cargo:root={self.workspace / 'out'}", output)

    def test_no_build_target(self) -> None:
        code, output, _ = self._main(
            ["build", str(self.source), "--out-dir", str(self.workspace / "out"), "--no-build-target", "-n"]
        )
        self.assertEqual(code, 0)
        self.assertIn("cmake --build . -j 4 --config Debug", output)
        self.assertNotIn("--target", output)

    def test_missing_environment_is_a_configuration_error(self) -> None:
        code, _, errors = self._main(["build", str(self.source), "-n"])
        self.assertEqual(code, 2)
        self.assertIn("Error: environment variable `OUT_DIR` not defined", errors)

    def test_invalid_define_is_a_configuration_error(self) -> None:
        code, _, errors = self._main(["build", str(self.source), "-D", "NOVALUE", "-n"])
        self.assertEqual(code, 2)
        self.assertIn("Error: define 'NOVALUE' must use KEY=VALUE form", errors)

    def test_unknown_config_keys_are_reported(self) -> None:
        config_file = self.workspace / "bad.yaml"
        config_file.write_text("cmake:\n  source: libfoo\n  colour: blue\n")
        code, _, errors = self._main(["build", "-c", str(config_file), "-n"])
        self.assertEqual(code, 2)
        self.assertIn("unknown keys: colour", errors)

    def test_missing_cmake_is_a_build_failure(self) -> None:
        self.env["OUT_DIR"] = str(self.workspace / "out")
        self.env["CMAKE"] = str(self.workspace / "no-such-cmake")
        code, _, errors = self._main(["build", str(self.source)])
        self.assertEqual(code, 1)
        self.assertIn("failed to execute command", errors)
        self.assertIn("not installed?", errors)


if __name__ == "__main__":
    unittest.main()
