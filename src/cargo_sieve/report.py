"""Buffered diagnostic sink for analyzer findings.

Findings are collected in memory and written out once, when the handle
returned by :meth:`ReportSink.install` is closed. The sink accepts exactly
one logger per lifetime; installing a second one is an error.

Report files are JSON, ``{"reports": [...]}`` with one object per finding,
not a TOML ``reports`` document. Readers that expect TOML must switch to a
JSON parser.
"""

from __future__ import annotations

from enum import Enum
import json
import os
from pathlib import Path
import sys
import threading
from typing import List, Mapping, Protocol, TextIO

from pydantic import BaseModel

from cargo_sieve.exceptions import ReportSinkError
from cargo_sieve.runtime.env_policy import REPORT_PATH_ENV

_LEVEL_RANK = {"Info": 0, "Warning": 1, "Error": 2}


class ReportLevel(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self.value]

    def __str__(self) -> str:
        return self.value


class Report(BaseModel):
    level: ReportLevel
    analyzer: str
    description: str
    location: str
    source: str

    def render(self) -> str:
        return (
            f"{self.level} ({self.analyzer}): {self.description}\n"
            f"-> {self.location}\n{self.source}"
        )


class ReportLogger(Protocol):
    def log(self, report: Report) -> None: ...

    def flush(self) -> None: ...


class _BufferedLogger:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: List[Report] = []

    def log(self, report: Report) -> None:
        with self._lock:
            self._reports.append(report)

    def snapshot(self) -> List[Report]:
        with self._lock:
            return list(self._reports)


class StderrLogger(_BufferedLogger):
    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self._stream = stream

    def flush(self) -> None:
        stream = self._stream or sys.stderr
        for report in self.snapshot():
            stream.write(report.render() + "\n")
        stream.flush()


class FileLogger(_BufferedLogger):
    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)

    def flush(self) -> None:
        reports = self.snapshot()
        if not reports:
            return
        payload = {"reports": [report.model_dump(mode="json") for report in reports]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def default_report_logger(env: Mapping[str, str] | None = None) -> ReportLogger:
    environ = os.environ if env is None else env
    if REPORT_PATH_ENV in environ:
        return FileLogger(environ[REPORT_PATH_ENV])
    return StderrLogger()


class FlushHandle:
    """Flushes the installed logger when closed or when its ``with`` exits."""

    def __init__(self, sink: "ReportSink") -> None:
        self._sink = sink
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sink.flush()

    def __enter__(self) -> "FlushHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ReportSink:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._logger: ReportLogger | None = None

    @property
    def installed(self) -> bool:
        return self._logger is not None

    def install(self, logger: ReportLogger) -> FlushHandle:
        with self._lock:
            if self._logger is not None:
                raise ReportSinkError("The report logger is already initialized")
            self._logger = logger
        return FlushHandle(self)

    def report(self, report: Report) -> None:
        logger = self._logger
        if logger is None:
            raise ReportSinkError("report logged before a report logger was installed")
        logger.log(report)

    def flush(self) -> None:
        if self._logger is not None:
            self._logger.flush()
