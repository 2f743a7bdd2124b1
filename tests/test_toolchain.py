from __future__ import annotations

from pathlib import Path

import pytest

from cargo_sieve.cargo.toolchain import (
    Toolchain,
    compile_cache,
    find_analyzer,
    parse_host_triple,
    self_executable,
)
from cargo_sieve.exceptions import ConfigurationError, SubprocessFailure, ToolchainMismatchError
from tests.process_fakes import FakeRun

ANALYZER = Path("/opt/sieve/bin/sieve")

VERSION_VERBOSE = """rustc 1.80.0-nightly (abc 2024-05-01)
binary: rustc
commit-hash: abc
host: aarch64-apple-darwin
release: 1.80.0-nightly
"""


def test_parse_host_triple() -> None:
    assert parse_host_triple(VERSION_VERBOSE) == "aarch64-apple-darwin"
    with pytest.raises(ToolchainMismatchError):
        parse_host_triple("rustc 1.80.0\nrelease: 1.80.0\n")


def test_host_triple_is_queried_once() -> None:
    run = FakeRun({f"{ANALYZER} -vV": (0, VERSION_VERBOSE, "")})
    toolchain = Toolchain(analyzer=ANALYZER, run_fn=run)
    assert toolchain.host_triple() == "aarch64-apple-darwin"
    assert toolchain.host_triple() == "aarch64-apple-darwin"
    assert run.argvs == [[str(ANALYZER), "-vV"]]


def test_host_triple_failure_carries_stderr() -> None:
    run = FakeRun({f"{ANALYZER} -vV": (1, "", "error: no such toolchain")})
    with pytest.raises(ToolchainMismatchError, match="no such toolchain"):
        Toolchain(analyzer=ANALYZER, run_fn=run).host_triple()


def test_matching_sysroots_pass(tmp_path: Path) -> None:
    sysroot = tmp_path / "sysroot"
    sysroot.mkdir()
    link = tmp_path / "link"
    link.symlink_to(sysroot)
    run = FakeRun(
        {
            "rustc --print sysroot": (0, f"{sysroot}\n", ""),
            f"{ANALYZER} --print sysroot": (0, f"{link}\n", ""),
        }
    )
    Toolchain(analyzer=ANALYZER, run_fn=run).check_sysroot_consistency()


def test_sysroot_errors(tmp_path: Path) -> None:
    run = FakeRun({"rustc --print sysroot": (2, "", "bad toolchain")})
    with pytest.raises(ToolchainMismatchError, match="Bad status code 2"):
        Toolchain(analyzer=ANALYZER, run_fn=run).sysroot("rustc")

    missing = tmp_path / "missing"
    run = FakeRun({"rustc --print sysroot": (0, f"{missing}\n", "")})
    with pytest.raises(ToolchainMismatchError, match="Failed to canonicalize sysroot"):
        Toolchain(analyzer=ANALYZER, run_fn=run).sysroot("rustc")


def test_clean_package_targets_host(tmp_path: Path) -> None:
    manifest = tmp_path / "Cargo.toml"
    run = FakeRun({f"{ANALYZER} -vV": (0, VERSION_VERBOSE, "")})
    Toolchain(analyzer=ANALYZER, run_fn=run).clean_package(manifest)
    assert run.argvs[-1] == [
        "cargo",
        "clean",
        "--manifest-path",
        str(manifest),
        "--target",
        "aarch64-apple-darwin",
    ]

    failing = FakeRun(
        {
            f"{ANALYZER} -vV": (0, VERSION_VERBOSE, ""),
            "cargo clean --target aarch64-apple-darwin": (101, "", ""),
        }
    )
    with pytest.raises(SubprocessFailure) as excinfo:
        Toolchain(analyzer=ANALYZER, run_fn=failing).clean_package()
    assert excinfo.value.exit_code == 101


def test_executable_lookup() -> None:
    assert self_executable("/opt/sieve/bin/cargo-sieve") == Path("/opt/sieve/bin/cargo-sieve").resolve()
    found = self_executable("cargo-sieve", which_fn=lambda name: "/usr/local/bin/cargo-sieve")
    assert found == Path("/usr/local/bin/cargo-sieve").resolve()
    with pytest.raises(ConfigurationError):
        self_executable("cargo-sieve", which_fn=lambda name: None)
    assert find_analyzer(Path("/opt/sieve/bin/cargo-sieve")) == ANALYZER


def test_compile_cache_lookup() -> None:
    assert compile_cache(which_fn=lambda name: f"/usr/bin/{name}") == "/usr/bin/sccache"
    assert compile_cache(which_fn=lambda name: None) is None
