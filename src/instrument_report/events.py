"""Test identities and the lifecycle listener contract.

The instrumentation parser drives one or more :class:`TestRunListener`
instances synchronously, one call per lifecycle occurrence.  The order of
calls for a run is::

    run_started
    test_started
    [test_failed | test_errored | test_assumption_failed | test_ignored]
    test_ended
    ...
    [run_failed]
    run_ended

Every method on the base class is a no-op so listeners only override the
events they care about.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


@dataclass(frozen=True, slots=True)
class TestIdentity:
    """Identifies one test case within a run by class and method name."""

    class_name: str
    test_name: str

    __test__ = False

    def __str__(self) -> str:
        return f"{self.class_name}#{self.test_name}"


class FailureKind(Enum):
    FAILURE = "failure"
    ERROR = "error"

    @property
    def tag(self) -> str:
        return self.value


class OutputKind(Enum):
    SYSTEM_OUT = "system-out"
    SYSTEM_ERR = "system-err"

    @property
    def tag(self) -> str:
        return self.value


class TestRunListener:
    """Receives lifecycle notifications from an instrumentation test run."""

    __test__ = False

    def run_started(self, run_name: str, test_count: int) -> None:
        """Reports the start of a run expected to execute ``test_count`` tests."""

    def test_started(self, test: TestIdentity) -> None:
        """Reports the start of an individual test case."""

    def test_failed(self, test: TestIdentity, trace: str) -> None:
        """Reports an assertion failure, ``trace`` holds the raw stack trace."""

    def test_errored(self, test: TestIdentity, trace: str) -> None:
        """Reports an unexpected exception raised by the test."""

    def test_assumption_failed(self, test: TestIdentity, trace: str) -> None:
        """Reports a test whose assumptions were not met."""

    def test_ignored(self, test: TestIdentity) -> None:
        """Reports a test that was skipped by the runner."""

    def test_ended(self, test: TestIdentity, metrics: Mapping[str, str]) -> None:
        """Reports the execution end of an individual test case."""

    def run_failed(self, reason: str) -> None:
        """Reports that the run failed to complete due to a fatal error."""

    def run_stopped(self, elapsed_millis: int) -> None:
        """Reports that the run was stopped on request."""

    def run_output(self, text: str) -> None:
        """Receives the free-form output stream of the instrumentation result."""

    def run_ended(self, elapsed_millis: int, metrics: Mapping[str, str]) -> None:
        """Reports the end of the run with the device reported elapsed time."""


__all__ = ["FailureKind", "OutputKind", "TestIdentity", "TestRunListener"]
