"""Second generation: cargo's RUSTC_WRAPPER, one call per compiled unit."""

from cargo_sieve.dispatch.classify import (
    Classification,
    DirectTargetPredicate,
    DispatchAction,
    classify,
    default_direct_target_predicate,
)
from cargo_sieve.dispatch.gate import CompilerDispatchGate, UnitCommand

__all__ = [
    "Classification",
    "CompilerDispatchGate",
    "DirectTargetPredicate",
    "DispatchAction",
    "UnitCommand",
    "classify",
    "default_direct_target_predicate",
]
