"""Parser for the raw output of ``am instrument -r``.

The device prints status bundles as ``key=value`` lines, each terminated by a
status code::

    INSTRUMENTATION_STATUS: class=com.example.FooTest
    INSTRUMENTATION_STATUS: test=testBar
    INSTRUMENTATION_STATUS: numtests=2
    INSTRUMENTATION_STATUS: stack=java.lang.AssertionError: boom
    at com.example.FooTest.testBar(FooTest.java:10)
    INSTRUMENTATION_STATUS_CODE: -2

Lines without a known prefix continue the value of the previous key.  The run
closes with an ``INSTRUMENTATION_RESULT`` bundle (holding the ``Time:`` report)
and an ``INSTRUMENTATION_CODE`` line.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from .events import TestIdentity, TestRunListener

logger = logging.getLogger(__name__)

STATUS = "INSTRUMENTATION_STATUS: "
STATUS_CODE = "INSTRUMENTATION_STATUS_CODE: "
STATUS_FAILED = "INSTRUMENTATION_FAILED: "
RESULT = "INSTRUMENTATION_RESULT: "
CODE = "INSTRUMENTATION_CODE: "
TIME_REPORT = "Time: "

KEY_TEST = "test"
KEY_CLASS = "class"
KEY_STACK = "stack"
KEY_NUMTESTS = "numtests"
KEY_ERROR = "Error"
KEY_SHORTMSG = "shortMsg"
KEY_STREAM = "stream"
KEY_CURRENT = "current"
KEY_ID = "id"

_KNOWN_KEYS = {KEY_TEST, KEY_CLASS, KEY_STACK, KEY_NUMTESTS, KEY_ERROR, KEY_SHORTMSG, KEY_STREAM, KEY_CURRENT, KEY_ID}

CODE_START = 1
CODE_IN_PROGRESS = 2
CODE_OK = 0
CODE_ERROR = -1
CODE_FAILURE = -2
CODE_IGNORED = -3
CODE_ASSUMPTION_FAILURE = -4

UNKNOWN_FAILURE = "Unknown failure"
INCOMPLETE_RUN = "Test run incomplete. Expected {expected} tests, received {received}"
RUN_CRASHED = "Instrumentation run failed due to '{reason}'"


@dataclass(slots=True)
class _StatusBundle:
    class_name: str | None = None
    test_name: str | None = None
    stack: str | None = None
    num_tests: int | None = None
    code: int | None = None

    def is_complete(self) -> bool:
        return self.class_name is not None and self.test_name is not None and self.code is not None


@dataclass(slots=True)
class InstrumentationResultParser:
    """Translate instrumentation output lines into :class:`TestRunListener` calls."""

    run_name: str
    listeners: Sequence[TestRunListener]
    _current_key: str | None = field(default=None, init=False)
    _current_value: List[str] | None = field(default=None, init=False)
    _in_result_bundle: bool = field(default=False, init=False)
    _bundle: _StatusBundle = field(default_factory=_StatusBundle, init=False)
    _result_metrics: Dict[str, str] = field(default_factory=dict, init=False)
    _run_started: bool = field(default=False, init=False)
    _num_expected: int = field(default=0, init=False)
    _num_finished: int = field(default=0, init=False)
    _in_progress: TestIdentity | None = field(default=None, init=False)
    _run_failure: str | None = field(default=None, init=False)
    _elapsed_millis: int = field(default=0, init=False)
    _done: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.listeners = list(self.listeners)

    @property
    def num_tests_expected(self) -> int:
        return self._num_expected

    @property
    def num_tests_finished(self) -> int:
        return self._num_finished

    def process_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self._parse(line)

    def done(self) -> None:
        """Flush pending state and report the end of the run exactly once."""

        if self._done:
            return
        self._submit_current_key_value()
        if self._run_failure is not None:
            self._handle_run_failure(self._run_failure)
        elif self._num_finished < self._num_expected:
            self._handle_run_failure(
                INCOMPLETE_RUN.format(expected=self._num_expected, received=self._num_finished)
            )
        elif self._in_progress is not None:
            self._handle_run_failure(
                INCOMPLETE_RUN.format(expected=self._num_finished + 1, received=self._num_finished)
            )
        if not self._run_started:
            self._report_run_started(0)
        metrics = dict(self._result_metrics)
        for listener in self.listeners:
            listener.run_ended(self._elapsed_millis, metrics)
        self._done = True

    # ------------------------ line handling ------------------------

    def _parse(self, line: str) -> None:
        if line.startswith(STATUS_CODE):
            self._submit_current_key_value()
            self._in_result_bundle = False
            self._parse_status_code(line[len(STATUS_CODE):])
        elif line.startswith(STATUS):
            self._submit_current_key_value()
            self._in_result_bundle = False
            self._parse_key(line, len(STATUS))
        elif line.startswith(RESULT):
            self._submit_current_key_value()
            self._in_result_bundle = True
            self._parse_key(line, len(RESULT))
        elif line.startswith(STATUS_FAILED):
            self._submit_current_key_value()
            self._in_result_bundle = False
            self._run_failure = line[len(STATUS_FAILED):].strip() or UNKNOWN_FAILURE
            logger.warning("instrument.run.crashed", extra={"reason": self._run_failure})
        elif line.startswith(CODE):
            self._submit_current_key_value()
            self._in_result_bundle = False
        elif line.startswith(TIME_REPORT):
            self._parse_time(line[len(TIME_REPORT):])
        elif self._current_value is not None:
            self._current_value.append(line)
        elif line.strip():
            logger.debug("instrument.line.unrecognized", extra={"line": line})

    def _parse_key(self, line: str, start: int) -> None:
        key, sep, value = line[start:].partition("=")
        if not sep:
            logger.debug("instrument.key.malformed", extra={"line": line})
            return
        self._current_key = key.strip()
        self._current_value = [value]

    def _submit_current_key_value(self) -> None:
        if self._current_key is None or self._current_value is None:
            return
        key = self._current_key
        value = "\n".join(self._current_value)
        self._current_key = None
        self._current_value = None
        if self._in_result_bundle:
            if key == KEY_SHORTMSG:
                self._run_failure = RUN_CRASHED.format(reason=value.strip())
            elif key == KEY_STREAM:
                if value.strip():
                    for listener in self.listeners:
                        listener.run_output(value)
            elif key not in _KNOWN_KEYS:
                self._result_metrics[key] = value
            return
        bundle = self._bundle
        if key == KEY_CLASS:
            bundle.class_name = value.strip()
        elif key == KEY_TEST:
            bundle.test_name = value.strip()
        elif key == KEY_NUMTESTS:
            try:
                bundle.num_tests = int(value.strip())
            except ValueError:
                logger.warning("instrument.numtests.invalid", extra={"value": value})
        elif key == KEY_STACK:
            bundle.stack = value
        elif key == KEY_ERROR:
            self._run_failure = value.strip() or UNKNOWN_FAILURE

    def _parse_status_code(self, value: str) -> None:
        bundle = self._bundle
        self._bundle = _StatusBundle()
        try:
            bundle.code = int(value.strip())
        except ValueError:
            logger.warning("instrument.status_code.invalid", extra={"value": value})
            return
        if bundle.num_tests is not None and not self._run_started:
            self._num_expected = bundle.num_tests
        self._report_result(bundle)

    def _parse_time(self, value: str) -> None:
        try:
            seconds = float(value.strip().replace(",", ""))
        except ValueError:
            seconds = math.nan
        millis = seconds * 1000
        if not math.isfinite(millis) or millis < 0:
            logger.warning("instrument.time.invalid", extra={"value": value})
            return
        self._elapsed_millis = int(round(millis))

    # ------------------------ reporting ------------------------

    def _report_run_started(self, count: int) -> None:
        self._run_started = True
        for listener in self.listeners:
            listener.run_started(self.run_name, count)

    def _report_result(self, bundle: _StatusBundle) -> None:
        if not bundle.is_complete():
            logger.warning("instrument.status.incomplete", extra={"code": bundle.code})
            return
        if not self._run_started:
            self._report_run_started(self._num_expected)
        test = TestIdentity(bundle.class_name or "", bundle.test_name or "")
        code = bundle.code
        if code == CODE_START:
            self._in_progress = test
            for listener in self.listeners:
                listener.test_started(test)
            return
        if code == CODE_IN_PROGRESS:
            return
        trace = bundle.stack if bundle.stack is not None else UNKNOWN_FAILURE
        for listener in self.listeners:
            if code == CODE_FAILURE:
                listener.test_failed(test, trace)
            elif code == CODE_ERROR:
                listener.test_errored(test, trace)
            elif code == CODE_IGNORED:
                listener.test_ignored(test)
            elif code == CODE_ASSUMPTION_FAILURE:
                listener.test_assumption_failed(test, trace)
            elif code != CODE_OK:
                logger.warning("instrument.status_code.unknown", extra={"code": code, "test": str(test)})
        self._end_test(test)

    def _end_test(self, test: TestIdentity) -> None:
        self._num_finished += 1
        if self._in_progress == test:
            self._in_progress = None
        for listener in self.listeners:
            listener.test_ended(test, {})

    def _handle_run_failure(self, reason: str) -> None:
        if not self._run_started:
            self._report_run_started(0)
        if self._in_progress is not None:
            test = self._in_progress
            for listener in self.listeners:
                listener.test_failed(test, reason)
            self._end_test(test)
        for listener in self.listeners:
            listener.run_failed(reason)


__all__ = ["InstrumentationResultParser"]
