from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import os
import re
import tomllib

from cargo_sieve.runtime.env_policy import (
    ALSO_ANALYZE_ENV,
    CONFIG_ENV,
    REPORT_PATH_ENV,
    TIMEOUT_ENV,
    USE_XARGO_ENV,
    VERBOSE_ENV,
    env_present,
    env_text,
    parse_duration_to_ns,
    split_name_list,
)

DEFAULT_CONFIG_NAME = "sieve.toml"
DEFAULT_TIMEOUT = "1h"
_BARE_SECONDS_RE = re.compile(r"\d+(?:\.\d+)?")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def orchestrator_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("orchestrator", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = list(split_name_list(value))
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend(split_name_list(item))
    return [item for item in items if item]


def _as_bool(value: TomlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


@dataclass(frozen=True)
class SieveSettings:
    report_path: str | None = None
    verbose: bool = False
    use_xargo: bool = False
    also_analyze: tuple[str, ...] = ()
    timeout_ns: int = 3_600_000_000_000
    clean: bool = False

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ns / 1_000_000_000


def load_settings(
    env: Mapping[str, str] | None = None,
    *,
    root: Path | None = None,
    config_path: Path | None = None,
) -> SieveSettings:
    """Merge ``sieve.toml`` defaults with the environment.

    Environment variables win over the file. Verbosity and the xargo switch
    follow presence semantics on the environment side.
    """
    environ = os.environ if env is None else env
    if config_path is None:
        configured = env_text(CONFIG_ENV, env=environ)
        if configured:
            config_path = Path(configured)
    section = orchestrator_defaults(root=root, config_path=config_path)

    report_path = env_text(REPORT_PATH_ENV, env=environ) if env_present(REPORT_PATH_ENV, env=environ) else None
    if report_path is None and isinstance(section.get("report_path"), str):
        report_path = str(section["report_path"]).strip() or None

    if env_present(ALSO_ANALYZE_ENV, env=environ):
        also_analyze = split_name_list(environ[ALSO_ANALYZE_ENV])
    else:
        also_analyze = tuple(_normalize_name_list(section.get("also_analyze")))

    timeout_text = env_text(TIMEOUT_ENV, env=environ)
    if not timeout_text:
        raw_timeout = section.get("timeout", DEFAULT_TIMEOUT)
        if isinstance(raw_timeout, bool) or raw_timeout is None:
            timeout_text = DEFAULT_TIMEOUT
        else:
            timeout_text = str(raw_timeout).strip()
    if _BARE_SECONDS_RE.fullmatch(timeout_text):
        # Bare numbers are seconds, in the file and in the environment.
        timeout_text = f"{timeout_text}s"

    return SieveSettings(
        report_path=report_path,
        verbose=env_present(VERBOSE_ENV, env=environ) or _as_bool(section.get("verbose")),
        use_xargo=env_present(USE_XARGO_ENV, env=environ) or _as_bool(section.get("use_xargo")),
        also_analyze=also_analyze,
        timeout_ns=parse_duration_to_ns(timeout_text),
        clean=_as_bool(section.get("clean")),
    )
