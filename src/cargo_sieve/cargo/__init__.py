"""Cargo and rustc facing helpers."""

from cargo_sieve.cargo.metadata import (
    CargoMetadata,
    CargoPackage,
    CargoTarget,
    TargetKind,
    dependency_graph,
    load_metadata,
)
from cargo_sieve.cargo.toolchain import Toolchain

__all__ = [
    "CargoMetadata",
    "CargoPackage",
    "CargoTarget",
    "TargetKind",
    "Toolchain",
    "dependency_graph",
    "load_metadata",
]
