from __future__ import annotations

from pathlib import Path
import unittest

from cmake_driver.config import BuildConfig, ConfigBuilder
from cmake_driver.environment import EnvironmentReader
from cmake_driver.platform import (
    PlatformResolver,
    SYSTEM_TABLE,
    split_triple,
    system_for,
    uses_android_ndk,
)

HOST = "x86_64-unknown-linux-gnu"


def _resolver(target: str, host: str = HOST, **env: str) -> PlatformResolver:
    return PlatformResolver(EnvironmentReader(env, echo=False), target=target, host=host)


class SystemTableTests(unittest.TestCase):
    def test_every_entry_maps_exactly(self) -> None:
        expected = {
            ("android", "arm"): ("Android", "armv7-a"),
            ("android", "x86"): ("Android", "i686"),
            ("android", "aarch64"): ("Android", "aarch64"),
            ("android", "x86_64"): ("Android", "x86_64"),
            ("dragonfly", "x86_64"): ("DragonFly", "x86_64"),
            ("macos", "aarch64"): ("Darwin", "arm64"),
            ("macos", "x86_64"): ("Darwin", "x86_64"),
            ("freebsd", "x86_64"): ("FreeBSD", "amd64"),
            ("freebsd", "aarch64"): ("FreeBSD", "aarch64"),
            ("fuchsia", "x86_64"): ("Fuchsia", "x86_64"),
            ("haiku", "x86_64"): ("Haiku", "x86_64"),
            ("ios", "aarch64"): ("iOS", "arm64"),
            ("linux", "powerpc"): ("Linux", "ppc"),
            ("linux", "powerpc64"): ("Linux", "ppc64"),
            ("linux", "powerpc64le"): ("Linux", "ppc64le"),
            ("linux", "aarch64"): ("Linux", "aarch64"),
            ("netbsd", "sparc64"): ("NetBSD", "sparc64"),
            ("openbsd", "x86_64"): ("OpenBSD", "amd64"),
            ("solaris", "x86_64"): ("SunOS", "x86_64"),
            ("tvos", "aarch64"): ("tvOS", "arm64"),
            ("visionos", "aarch64"): ("visionOS", "arm64"),
            ("watchos", "aarch64"): ("watchOS", "arm64"),
            ("windows", "x86_64"): ("Windows", "AMD64"),
            ("windows", "x86"): ("Windows", "X86"),
            ("windows", "aarch64"): ("Windows", "ARM64"),
            ("none", "arm"): ("Generic", "arm"),
        }
        for (os_name, arch), result in expected.items():
            with self.subTest(os=os_name, arch=arch):
                self.assertEqual(system_for(os_name, arch), result)
        self.assertEqual({os_name for os_name, _ in expected}, set(SYSTEM_TABLE))

    def test_unknown_os_passes_through(self) -> None:
        self.assertEqual(system_for("hermit", "x86_64"), ("hermit", "x86_64"))


class SplitTripleTests(unittest.TestCase):
    def test_common_triples(self) -> None:
        cases = {
            "x86_64-unknown-linux-gnu": ("linux", "x86_64"),
            "aarch64-apple-darwin": ("macos", "aarch64"),
            "aarch64-apple-ios": ("ios", "aarch64"),
            "armv7-linux-androideabi": ("android", "arm"),
            "i686-pc-windows-msvc": ("windows", "x86"),
            "thumbv7em-none-eabihf": ("none", "arm"),
            "thumbv7neon-linux-androideabi": ("android", "arm"),
            "arm64_32-apple-watchos": ("watchos", "aarch64"),
            "riscv64gc-unknown-linux-gnu": ("linux", "riscv64"),
            "riscv32imac-unknown-none-elf": ("none", "riscv32"),
            "powerpc64le-unknown-linux-gnu": ("linux", "powerpc64le"),
            "x86_64-unknown-freebsd": ("freebsd", "x86_64"),
            "sparcv9-sun-solaris": ("solaris", "sparc64"),
        }
        for triple, expected in cases.items():
            with self.subTest(triple=triple):
                self.assertEqual(split_triple(triple), expected)


class PlatformResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = ConfigBuilder("/src").finalize()

    def test_no_system_defines_when_target_equals_host(self) -> None:
        resolver = _resolver(HOST, CARGO_CFG_TARGET_OS="linux", CARGO_CFG_TARGET_ARCH="x86_64")
        self.assertFalse(resolver.cross_compiling)
        self.assertEqual(resolver.system_defines(self.config), [])
        self.assertIs(resolver.resolve(self.config), self.config)

    def test_cross_compile_injects_system_name_and_processor(self) -> None:
        resolver = _resolver(
            "aarch64-linux-android",
            CARGO_CFG_TARGET_OS="android",
            CARGO_CFG_TARGET_ARCH="aarch64",
        )
        resolved = resolver.resolve(self.config)
        self.assertEqual(
            resolved.defines,
            (("CMAKE_SYSTEM_NAME", "Android"), ("CMAKE_SYSTEM_PROCESSOR", "aarch64")),
        )

    def test_cross_compile_uses_processor_override(self) -> None:
        resolver = _resolver(
            "x86_64-unknown-freebsd",
            CARGO_CFG_TARGET_OS="freebsd",
            CARGO_CFG_TARGET_ARCH="x86_64",
        )
        self.assertEqual(
            resolver.system_defines(self.config),
            [("CMAKE_SYSTEM_NAME", "FreeBSD"), ("CMAKE_SYSTEM_PROCESSOR", "amd64")],
        )

    def test_target_os_arch_falls_back_to_triple(self) -> None:
        resolver = _resolver("aarch64-apple-darwin")
        self.assertEqual(resolver.target_os_arch(), ("macos", "aarch64"))
        self.assertEqual(
            resolver.system_defines(self.config),
            [("CMAKE_SYSTEM_NAME", "Darwin"), ("CMAKE_SYSTEM_PROCESSOR", "arm64")],
        )

    def test_explicit_system_name_is_respected(self) -> None:
        config = ConfigBuilder("/src").define("CMAKE_SYSTEM_NAME", "Linux").finalize()
        resolver = _resolver("aarch64-unknown-linux-gnu")
        self.assertEqual(resolver.system_defines(config), [])

    def test_toolchain_file_from_environment(self) -> None:
        resolver = _resolver(
            "aarch64-unknown-linux-gnu",
            **{"CMAKE_TOOLCHAIN_FILE_aarch64_unknown_linux_gnu": "/opt/toolchain.cmake"},
        )
        self.assertEqual(
            resolver.system_defines(self.config),
            [("CMAKE_TOOLCHAIN_FILE", "/opt/toolchain.cmake")],
        )

    def test_toolchain_file_applies_to_native_builds(self) -> None:
        resolver = _resolver(HOST, HOST_CMAKE_TOOLCHAIN_FILE="/opt/native.cmake")
        self.assertEqual(
            resolver.system_defines(self.config),
            [("CMAKE_TOOLCHAIN_FILE", "/opt/native.cmake")],
        )

    def test_configured_toolchain_file_suppresses_everything(self) -> None:
        config = ConfigBuilder("/src").define("CMAKE_TOOLCHAIN_FILE", "/opt/mine.cmake").finalize()
        resolver = _resolver("aarch64-unknown-linux-gnu", CMAKE_TOOLCHAIN_FILE="/opt/env.cmake")
        self.assertEqual(resolver.system_defines(config), [])

    def test_redox_uses_generic_system(self) -> None:
        resolver = _resolver("x86_64-unknown-redox")
        self.assertEqual(resolver.system_defines(self.config), [("CMAKE_SYSTEM_NAME", "Generic")])
        config = ConfigBuilder("/src").define("CMAKE_SYSTEM_NAME", "Redox").finalize()
        self.assertEqual(resolver.system_defines(config), [])


class AndroidNdkTests(unittest.TestCase):
    def test_requires_abi_and_ndk_toolchain(self) -> None:
        config = (
            ConfigBuilder("/src")
            .define("ANDROID_ABI", "arm64-v8a")
            .define("CMAKE_TOOLCHAIN_FILE", "/ndk/build/cmake/android.toolchain.cmake")
            .finalize()
        )
        self.assertTrue(uses_android_ndk(config))

    def test_windows_style_toolchain_path(self) -> None:
        config = BuildConfig(
            path=Path("/src"),
            defines=(
                ("ANDROID_ABI", "x86_64"),
                ("CMAKE_TOOLCHAIN_FILE", "C:\\ndk\\build\\cmake\\android.toolchain.cmake"),
            ),
        )
        self.assertTrue(uses_android_ndk(config))

    def test_other_toolchains_are_not_ndk(self) -> None:
        config = (
            ConfigBuilder("/src")
            .define("ANDROID_ABI", "arm64-v8a")
            .define("CMAKE_TOOLCHAIN_FILE", "/opt/custom.cmake")
            .finalize()
        )
        self.assertFalse(uses_android_ndk(config))
        self.assertFalse(uses_android_ndk(ConfigBuilder("/src").finalize()))


if __name__ == "__main__":
    unittest.main()
