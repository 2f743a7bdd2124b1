from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_CEILING
import os
import re
from typing import Mapping

from cargo_sieve.exceptions import ConfigurationError

REPORT_PATH_ENV = "SIEVE_REPORT_PATH"
VERBOSE_ENV = "SIEVE_VERBOSE"
USE_XARGO_ENV = "SIEVE_USE_XARGO_INSTEAD_OF_CARGO"
ALSO_ANALYZE_ENV = "SIEVE_ALSO_ANALYZE"
ARGS_ENV = "SIEVE_ARGS"
TIMEOUT_ENV = "SIEVE_TIMEOUT"
CONFIG_ENV = "SIEVE_CONFIG"
RUSTC_WRAPPER_ENV = "RUSTC_WRAPPER"
CARGO_PKG_NAME_ENV = "CARGO_PKG_NAME"

_DURATION_TOKEN_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ns|us|ms|s|m|h)")
_DURATION_UNIT_NS: dict[str, Decimal] = {
    "ns": Decimal("1"),
    "us": Decimal("1000"),
    "ms": Decimal("1000000"),
    "s": Decimal("1000000000"),
    "m": Decimal("60000000000"),
    "h": Decimal("3600000000000"),
}


def _environ(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def env_text(name: str, *, default: str = "", env: Mapping[str, str] | None = None) -> str:
    return _environ(env).get(name, default).strip()


def env_present(name: str, *, env: Mapping[str, str] | None = None) -> bool:
    # Presence alone is the switch; an empty value still counts.
    return name in _environ(env)


def split_name_list(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(",") if part.strip())


def parse_duration_to_ns(duration: str, *, field_name: str = "timeout") -> int:
    text = str(duration).strip().lower()
    if not text:
        raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
    idx = 0
    total_ns = Decimal("0")
    while idx < len(text):
        match = _DURATION_TOKEN_RE.match(text, idx)
        if match is None:
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        try:
            value = Decimal(match.group("value"))
        except (InvalidOperation, ValueError):
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        if value <= 0:
            raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
        total_ns += value * _DURATION_UNIT_NS[match.group("unit")]
        idx = match.end()
    total_ns_int = int(total_ns.to_integral_value(rounding=ROUND_CEILING))
    if total_ns_int <= 0:
        raise ConfigurationError(f"invalid {field_name} duration: {duration!r}")
    return total_ns_int


def suffixed_report_path(base: str, *parts: str) -> str:
    return "-".join([base, *parts])
