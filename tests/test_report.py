from __future__ import annotations

import io
import json
import tomllib
from pathlib import Path

import pytest

from cargo_sieve.exceptions import ReportSinkError
from cargo_sieve.report import (
    FileLogger,
    Report,
    ReportLevel,
    ReportSink,
    StderrLogger,
    default_report_logger,
)


def _report(level: ReportLevel = ReportLevel.WARNING) -> Report:
    return Report(
        level=level,
        analyzer="UnsafeDataflow",
        description="Potential unsafe dataflow issue in `Vec::extend`",
        location="src/lib.rs:10:5: 12:6",
        source="unsafe { ptr::copy(src, dst, n) }",
    )


def test_levels_are_ordered() -> None:
    assert ReportLevel.INFO.rank < ReportLevel.WARNING.rank < ReportLevel.ERROR.rank
    assert str(ReportLevel.ERROR) == "Error"


def test_sink_is_set_once() -> None:
    sink = ReportSink()
    sink.install(StderrLogger(io.StringIO()))
    with pytest.raises(ReportSinkError, match="already initialized"):
        sink.install(StderrLogger(io.StringIO()))


def test_reporting_before_install_is_an_error() -> None:
    with pytest.raises(ReportSinkError):
        ReportSink().report(_report())


def test_stderr_logger_renders_on_flush() -> None:
    stream = io.StringIO()
    sink = ReportSink()
    with sink.install(StderrLogger(stream)):
        sink.report(_report())
        assert stream.getvalue() == ""
    text = stream.getvalue()
    assert text.startswith("Warning (UnsafeDataflow): Potential unsafe dataflow issue")
    assert "-> src/lib.rs:10:5: 12:6\n" in text


def test_flush_handle_flushes_once() -> None:
    stream = io.StringIO()
    sink = ReportSink()
    handle = sink.install(StderrLogger(stream))
    sink.report(_report())
    handle.close()
    handle.close()
    assert stream.getvalue().count("UnsafeDataflow") == 1


def test_file_logger_writes_json_document(tmp_path: Path) -> None:
    path = tmp_path / "reports" / "r-lib-foo-foo"
    sink = ReportSink()
    with sink.install(FileLogger(path)):
        sink.report(_report(ReportLevel.ERROR))
        sink.report(_report(ReportLevel.INFO))
    text = path.read_text(encoding="utf-8")
    with pytest.raises(tomllib.TOMLDecodeError):
        tomllib.loads(text)
    payload = json.loads(text)
    assert [item["level"] for item in payload["reports"]] == ["Error", "Info"]
    assert payload["reports"][0]["analyzer"] == "UnsafeDataflow"


def test_file_logger_skips_empty_runs(tmp_path: Path) -> None:
    path = tmp_path / "r"
    with ReportSink().install(FileLogger(path)):
        pass
    assert not path.exists()


def test_default_logger_follows_report_path(tmp_path: Path) -> None:
    target = tmp_path / "r"
    logger = default_report_logger({"SIEVE_REPORT_PATH": str(target)})
    assert isinstance(logger, FileLogger)
    assert logger.path == target
    assert isinstance(default_report_logger({}), StderrLogger)
