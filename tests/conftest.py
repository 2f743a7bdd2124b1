from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from cargo_sieve.cargo.metadata import CargoMetadata, parse_metadata


def _package_id(name: str, version: str) -> str:
    return f"path+file:///ws/{name}#{name}@{version}"


def _target(name: str, kind: str) -> dict[str, object]:
    crate_types = ["lib"] if kind == "lib" else [kind]
    return {
        "name": name,
        "kind": [kind],
        "crate_types": crate_types,
        "src_path": f"/ws/{name}/src/{'lib' if kind == 'lib' else 'main'}.rs",
    }


@pytest.fixture
def make_metadata() -> Callable[..., CargoMetadata]:
    """Build cargo metadata from ``{name: ([(kind, target)], [dep, ...])}``.

    Dependencies are normal unless written ``"dev:name"`` or ``"build:name"``.
    Names listed in ``external`` are resolved but not workspace members.
    """

    def _make(
        packages: dict[str, tuple[list[tuple[str, str]], list[str]]],
        *,
        external: tuple[str, ...] = (),
        version: str = "0.1.0",
    ) -> CargoMetadata:
        payload_packages = []
        nodes = []
        for name, (targets, deps) in packages.items():
            payload_packages.append(
                {
                    "id": _package_id(name, version),
                    "name": name,
                    "version": version,
                    "targets": [_target(target, kind) for kind, target in targets],
                    "manifest_path": f"/ws/{name}/Cargo.toml",
                }
            )
            node_deps = []
            for dep in deps:
                kind, _, dep_name = dep.rpartition(":")
                node_deps.append(
                    {
                        "name": dep_name,
                        "pkg": _package_id(dep_name, version),
                        "dep_kinds": [{"kind": kind or None, "target": None}],
                    }
                )
            nodes.append({"id": _package_id(name, version), "deps": node_deps})
        payload = {
            "packages": payload_packages,
            "workspace_members": [
                _package_id(name, version) for name in packages if name not in external
            ],
            "resolve": {"nodes": nodes, "root": None},
            "version": 1,
        }
        return parse_metadata(json.dumps(payload))

    return _make
