from __future__ import annotations

from enum import Enum
from pathlib import Path
import subprocess
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from cargo_sieve.exceptions import ConfigurationError

LIBRARY_KINDS = frozenset({"lib", "rlib", "staticlib"})

RunCommand = Callable[..., subprocess.CompletedProcess[str]]


class TargetKind(Enum):
    LIBRARY = "lib"
    BINARY = "bin"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        # Libraries build before the binaries that may link them.
        return _KIND_RANK[self]

    @staticmethod
    def is_lib_str(value: str) -> bool:
        return value in LIBRARY_KINDS

    @classmethod
    def from_kinds(cls, kinds: List[str]) -> "TargetKind":
        if any(cls.is_lib_str(kind) for kind in kinds):
            return cls.LIBRARY
        if kinds and kinds[0] == "bin":
            return cls.BINARY
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


_KIND_RANK = {TargetKind.LIBRARY: 0, TargetKind.BINARY: 1, TargetKind.UNKNOWN: 2}


class CargoTarget(BaseModel):
    name: str
    kind: List[str]
    crate_types: List[str] = []
    src_path: Optional[str] = None

    @property
    def target_kind(self) -> TargetKind:
        return TargetKind.from_kinds(self.kind)


class CargoPackage(BaseModel):
    id: str
    name: str
    version: str
    targets: List[CargoTarget] = []
    manifest_path: Optional[str] = None

    @property
    def spec(self) -> str:
        return f"{self.name}@{self.version}"


class DepKindInfo(BaseModel):
    # ``null`` is a normal dependency; "dev" and "build" are the others.
    kind: Optional[str] = None
    target: Optional[str] = None


class NodeDep(BaseModel):
    pkg: str
    name: str = ""
    dep_kinds: List[DepKindInfo] = []

    @property
    def is_normal(self) -> bool:
        return any(info.kind is None for info in self.dep_kinds)


class ResolveNode(BaseModel):
    id: str
    deps: List[NodeDep] = []


class Resolve(BaseModel):
    nodes: List[ResolveNode]
    root: Optional[str] = None


class CargoMetadata(BaseModel):
    packages: List[CargoPackage]
    workspace_members: List[str]
    resolve: Optional[Resolve] = None

    def package(self, package_id: str) -> CargoPackage:
        for package in self.packages:
            if package.id == package_id:
                return package
        raise ConfigurationError(f"package {package_id} is missing from cargo metadata")


def dependency_graph(metadata: CargoMetadata) -> Dict[str, frozenset[str]]:
    """Package id -> ids of its normal dependencies."""
    if metadata.resolve is None:
        raise ConfigurationError("Can't resolve metadata.")
    return {
        node.id: frozenset(dep.pkg for dep in node.deps if dep.is_normal)
        for node in metadata.resolve.nodes
    }


def parse_metadata(text: str) -> CargoMetadata:
    try:
        return CargoMetadata.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigurationError(f"Could not parse cargo metadata\n{exc}") from exc


def canonical_manifest_path(manifest_path: str | Path) -> Path:
    try:
        return Path(manifest_path).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ConfigurationError(f"Unreadable manifest {manifest_path}: {exc}") from exc


def load_metadata(
    manifest_path: str | Path | None = None,
    *,
    run_fn: RunCommand = subprocess.run,
) -> CargoMetadata:
    command = ["cargo", "metadata", "--format-version", "1"]
    if manifest_path is not None:
        command.extend(["--manifest-path", str(canonical_manifest_path(manifest_path))])
    try:
        proc = run_fn(command, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise ConfigurationError(f"Could not obtain Cargo metadata\n{exc}") from exc
    if proc.returncode != 0:
        detail = (proc.stderr or "").strip()
        raise ConfigurationError(f"Could not obtain Cargo metadata\n{detail}")
    return parse_metadata(proc.stdout)
