from __future__ import annotations

import unittest

from cmake_driver.compiler import CompilerInfo, detect_compiler
from cmake_driver.environment import EnvironmentReader

LINUX = "x86_64-unknown-linux-gnu"


def _detect(language: str, target: str = LINUX, host: str = LINUX, env: dict[str, str] | None = None, **kwargs):
    reader = EnvironmentReader(env or {}, echo=False)
    return detect_compiler(language, reader=reader, target=target, host=host, **kwargs)


class DetectCompilerTests(unittest.TestCase):
    def test_defaults_for_gnu_targets(self) -> None:
        cc = _detect("C")
        self.assertEqual(cc.path, "cc")
        self.assertEqual(cc.args, ("-O0", "-ffunction-sections", "-fdata-sections", "-fPIC"))
        self.assertEqual(_detect("CXX").path, "c++")

    def test_environment_compiler_and_flags(self) -> None:
        env = {"CXX_x86_64_unknown_linux_gnu": "/usr/bin/clang++", "HOST_CXXFLAGS": "-stdlib=libc++ -DX='a b'"}
        cxx = _detect("CXX", env=env)
        self.assertEqual(cxx.path, "/usr/bin/clang++")
        self.assertEqual(
            cxx.args,
            (
                "-O0",
                "-ffunction-sections",
                "-fdata-sections",
                "-fPIC",
                "--target=x86_64-unknown-linux-gnu",
                "-stdlib=libc++",
                "-DX=a b",
            ),
        )

    def test_pass_target_and_default_flags_switches(self) -> None:
        cc = _detect("C", env={"CC": "clang"}, pass_target=False)
        self.assertNotIn("--target=x86_64-unknown-linux-gnu", cc.args)
        self.assertEqual(_detect("C", no_default_flags=True).args, ("-O0",))

    def test_pic_defaults(self) -> None:
        self.assertNotIn("-fPIC", _detect("C", target="thumbv7em-none-eabihf").args)
        self.assertNotIn("-fPIC", _detect("C", target="x86_64-pc-windows-gnu").args)
        self.assertIn("-fPIC", _detect("C", target="thumbv7em-none-eabihf", pic=True).args)
        self.assertNotIn("-fPIC", _detect("C", pic=False).args)

    def test_msvc(self) -> None:
        target = "x86_64-pc-windows-msvc"
        self.assertEqual(_detect("C", target=target, host=target), CompilerInfo("cl.exe", ("-nologo", "-MD", "-Od")))
        self.assertEqual(
            _detect("CXX", target=target, host=target, static_crt=True).args,
            ("-nologo", "-MT", "-Od"),
        )

    def test_unknown_language(self) -> None:
        with self.assertRaises(ValueError):
            _detect("ASM")


class CompilerInfoTests(unittest.TestCase):
    def test_from_mapping(self) -> None:
        info = CompilerInfo.from_mapping({"path": " /opt/gcc ", "args": ["-m64"], "env": {"LANG": "C"}})
        self.assertEqual(info.path, "/opt/gcc")
        self.assertEqual(info.args, ("-m64",))
        self.assertEqual(info.env, (("LANG", "C"),))

    def test_from_mapping_rejects_bad_entries(self) -> None:
        with self.assertRaises(ValueError):
            CompilerInfo.from_mapping({"args": []})
        with self.assertRaises(ValueError):
            CompilerInfo.from_mapping({"path": "gcc", "wrapper": "ccache"})


if __name__ == "__main__":
    unittest.main()
