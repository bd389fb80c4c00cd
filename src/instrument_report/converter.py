"""Wires the instrumentation parser to the report builder and the output file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Mapping

from .builder import ReportBuilder
from .errors import ResourceError
from .events import TestIdentity, TestRunListener
from .parser import InstrumentationResultParser
from .settings import ReportSettings, get_settings

logger = logging.getLogger(__name__)


class ReportingListener(TestRunListener):
    """Forwards parser events to a :class:`ReportBuilder`."""

    def __init__(self, builder: ReportBuilder, *, include_run_output: bool = False) -> None:
        self.builder = builder
        self.include_run_output = include_run_output

    def run_started(self, run_name: str, test_count: int) -> None:
        logger.info("report.suite.started", extra={"suite": run_name, "test_count": test_count})

    def test_started(self, test: TestIdentity) -> None:
        self.builder.case_started(test)

    def test_failed(self, test: TestIdentity, trace: str) -> None:
        self.builder.case_failed(test, trace)

    def test_errored(self, test: TestIdentity, trace: str) -> None:
        self.builder.case_errored(test, trace)

    def test_assumption_failed(self, test: TestIdentity, trace: str) -> None:
        logger.warning("report.case.assumption_failed", extra={"test": str(test), "trace": trace})

    def test_ended(self, test: TestIdentity, metrics: Mapping[str, str]) -> None:
        self.builder.case_ended(test)

    def run_failed(self, reason: str) -> None:
        logger.warning("report.suite.failed", extra={"reason": reason})

    def run_output(self, text: str) -> None:
        if self.include_run_output:
            self.builder.system_output(text)

    def run_ended(self, elapsed_millis: int, metrics: Mapping[str, str]) -> None:
        logger.info("report.suite.ended", extra={"elapsed_ms": elapsed_millis})
        self.builder.suite_ended(elapsed_millis)


def suite_name_for(path: str | Path) -> str:
    """Return the file name of ``path`` without its last extension."""

    name = Path(path).name
    idx = name.rfind(".")
    return name[:idx] if idx > 0 else name


def output_dir_for(path: str | Path) -> Path:
    return Path(path).parent


def read_input(path: str | Path) -> str:
    """Read an instrumentation log, normalising line endings to ``\\n``."""

    return Path(path).read_text(encoding="utf-8", errors="replace").replace("\r", "")


class Converter:
    """Converts one instrumentation log into ``<output_dir>/<suite_name>.xml``."""

    def __init__(
        self,
        suite_name: str,
        output_dir: str | Path,
        *,
        settings: ReportSettings | None = None,
    ) -> None:
        self.suite_name = suite_name
        self.output_path = Path(output_dir) / f"{suite_name}.xml"
        self.settings = settings or get_settings()

    @classmethod
    def for_input(cls, input_path: str | Path, *, settings: ReportSettings | None = None) -> "Converter":
        return cls(suite_name_for(input_path), output_dir_for(input_path), settings=settings)

    def convert(self, text: str) -> Path:
        """Parse ``text`` and write the XML report, returning its path."""

        builder = ReportBuilder(settings=self.settings)
        sink = self._open_output()
        try:
            self.run(builder, text, sink)
        finally:
            self._close_output(sink)
        logger.info(
            "report.written",
            extra={"path": str(self.output_path), "cases": len(builder.report.cases)},
        )
        return self.output_path

    def run(self, builder: ReportBuilder, text: str, sink: BinaryIO | None = None) -> ReportBuilder:
        """Drive ``builder`` through the parsed events of ``text``."""

        listener = ReportingListener(builder, include_run_output=self.settings.include_run_output)
        parser = InstrumentationResultParser(self.suite_name, [listener])
        builder.set_output(sink)
        builder.suite_started()
        parser.process_lines(text.split("\n"))
        parser.done()
        return builder

    def _open_output(self) -> BinaryIO:
        try:
            return open(self.output_path, "wb")
        except OSError as exc:
            raise ResourceError(
                f"Unable to open report file {self.output_path}: {exc}", path=str(self.output_path)
            ) from exc

    def _close_output(self, sink: BinaryIO) -> None:
        try:
            sink.close()
        except OSError as exc:
            raise ResourceError(
                f"Unable to close report file {self.output_path}: {exc}", path=str(self.output_path)
            ) from exc


__all__ = [
    "Converter",
    "ReportingListener",
    "output_dir_for",
    "read_input",
    "suite_name_for",
]
