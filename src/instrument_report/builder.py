"""Report builder state machine turning lifecycle events into a suite document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Callable, Dict, List, Tuple

from .errors import InvalidStateError
from .events import FailureKind, OutputKind, TestIdentity
from .failures import FailureDetail, parse_failure_text
from .serializer import render_report, write_report
from .settings import ReportSettings, get_settings
from .telemetry import record_suite, record_transition

logger = logging.getLogger(__name__)

ISO8601_DATETIME = "%Y-%m-%dT%H:%M:%S"


class BuilderState(Enum):
    IDLE = "idle"
    BUILDING = "building"
    FINALIZED = "finalized"


_ALLOWED_TRANSITIONS: Dict[BuilderState, set[BuilderState]] = {
    BuilderState.IDLE: {BuilderState.BUILDING},
    BuilderState.BUILDING: {BuilderState.FINALIZED},
    BuilderState.FINALIZED: set(),
}


class FailureState(Enum):
    NONE = "none"
    FAILED = "failed"
    ERRORED = "errored"


@dataclass(slots=True)
class CaseRecord:
    """Document entry for one test case, created at most once per identity."""

    identity: TestIdentity
    failures: List[FailureDetail] = field(default_factory=list)

    @property
    def failure_state(self) -> FailureState:
        if any(f.kind is FailureKind.ERROR for f in self.failures):
            return FailureState.ERRORED
        if self.failures:
            return FailureState.FAILED
        return FailureState.NONE

    @property
    def outcome(self) -> str:
        state = self.failure_state
        return "passed" if state is FailureState.NONE else state.value


@dataclass(slots=True)
class SuiteReport:
    """In-memory model of one suite, in first-touched case order."""

    timestamp: str
    elapsed_millis: int | None = None
    classname: str | None = None
    cases: Dict[TestIdentity, CaseRecord] = field(default_factory=dict)
    outputs: List[Tuple[OutputKind, str]] = field(default_factory=list)
    properties: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float | None:
        if self.elapsed_millis is None:
            return None
        return self.elapsed_millis / 1000.0

    def outcome_counts(self) -> Dict[str, int]:
        counts = {"passed": 0, "failed": 0, "errored": 0}
        for record in self.cases.values():
            counts[record.outcome] += 1
        return counts


class ReportBuilder:
    """Consumes suite and case events for exactly one run.

    ``suite_started`` moves the builder from ``IDLE`` to ``BUILDING`` and
    ``suite_ended`` from ``BUILDING`` to ``FINALIZED``.  Every other event is
    only accepted while building; anything else raises
    :class:`~instrument_report.errors.InvalidStateError`.
    """

    def __init__(
        self,
        *,
        settings: ReportSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._clock = clock or datetime.now
        self._state = BuilderState.IDLE
        self._report: SuiteReport | None = None
        self._output: BinaryIO | None = None
        self._last_seen_class: str | None = None

    @property
    def state(self) -> BuilderState:
        return self._state

    @property
    def report(self) -> SuiteReport:
        if self._report is None:
            raise InvalidStateError("report", self._state.value)
        return self._report

    def set_output(self, sink: BinaryIO | None) -> None:
        """Configure the binary sink written to when the suite ends."""

        if self._state is BuilderState.FINALIZED:
            raise InvalidStateError("set_output", self._state.value)
        self._output = sink

    # ------------------------ suite lifecycle ------------------------

    def suite_started(self) -> None:
        self._transition("suite_started", BuilderState.BUILDING)
        self._report = SuiteReport(timestamp=self._clock().strftime(ISO8601_DATETIME))

    def suite_ended(self, elapsed_millis: int) -> None:
        self._require("suite_ended")
        if elapsed_millis < 0:
            raise ValueError("elapsed_millis must not be negative")
        report = self.report
        report.elapsed_millis = int(elapsed_millis)
        if report.classname is None:
            report.classname = self._last_seen_class or self.settings.unknown_label
        self._transition("suite_ended", BuilderState.FINALIZED)
        record_suite(outcomes=report.outcome_counts(), elapsed_s=report.elapsed_seconds or 0.0)
        if self._output is not None:
            self.write(self._output)

    # ------------------------ case lifecycle ------------------------

    def case_started(self, identity: TestIdentity) -> None:
        self._require("case_started")
        self._last_seen_class = identity.class_name
        logger.debug("report.case.started", extra={"test": str(identity)})

    def case_failed(
        self,
        identity: TestIdentity,
        raw_text: str,
        kind: FailureKind = FailureKind.FAILURE,
    ) -> FailureDetail:
        """Attach a failure (or error) to ``identity``, creating its record if needed."""

        self._require("case_errored" if kind is FailureKind.ERROR else "case_failed")
        self._last_seen_class = identity.class_name
        detail = parse_failure_text(raw_text, kind, placeholder=self.settings.failure_placeholder)
        record = self.report.cases.get(identity)
        if record is None:
            record = CaseRecord(identity=identity)
            self.report.cases[identity] = record
        record.failures.append(detail)
        logger.debug(
            "report.case.failed",
            extra={"test": str(identity), "kind": kind.value, "type": detail.exception_class_name},
        )
        return detail

    def case_errored(self, identity: TestIdentity, raw_text: str) -> FailureDetail:
        return self.case_failed(identity, raw_text, FailureKind.ERROR)

    def case_ended(self, identity: TestIdentity) -> None:
        self._require("case_ended")
        self._last_seen_class = identity.class_name
        if identity in self.report.cases:
            return
        self.report.cases[identity] = CaseRecord(identity=identity)
        # Last completed case wins, even when the suite mixes classes.
        self.report.classname = identity.class_name
        logger.debug("report.case.ended", extra={"test": str(identity)})

    # ------------------------ suite level content ------------------------

    def system_output(self, text: str) -> None:
        self._require("system_output")
        self.report.outputs.append((OutputKind.SYSTEM_OUT, text))

    def system_error(self, text: str) -> None:
        self._require("system_error")
        self.report.outputs.append((OutputKind.SYSTEM_ERR, text))

    def add_property(self, name: str, value: str) -> None:
        self._require("add_property")
        self.report.properties.append((name, value))

    # ------------------------ serialization ------------------------

    def render(self) -> bytes:
        self._require("render", BuilderState.FINALIZED)
        return render_report(
            self.report,
            stylesheet=self.settings.stylesheet,
            indent=self.settings.indent,
            unknown_label=self.settings.unknown_label,
        )

    def write(self, sink: BinaryIO) -> None:
        self._require("write", BuilderState.FINALIZED)
        write_report(
            self.report,
            sink,
            stylesheet=self.settings.stylesheet,
            indent=self.settings.indent,
            unknown_label=self.settings.unknown_label,
        )

    # ------------------------ state machine ------------------------

    def _require(self, operation: str, state: BuilderState = BuilderState.BUILDING) -> None:
        if self._state is not state:
            raise InvalidStateError(operation, self._state.value)

    def _transition(self, operation: str, next_state: BuilderState) -> None:
        previous = self._state
        if next_state not in _ALLOWED_TRANSITIONS[previous]:
            raise InvalidStateError(operation, previous.value)
        self._state = next_state
        logger.info(
            "report.builder.transition",
            extra={"from": previous.name, "to": next_state.name},
        )
        record_transition(previous_state=previous.value, next_state=next_state.value)


__all__ = [
    "BuilderState",
    "CaseRecord",
    "FailureState",
    "ReportBuilder",
    "SuiteReport",
]
