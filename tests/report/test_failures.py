from __future__ import annotations

import pytest

from instrument_report.events import FailureKind
from instrument_report.failures import DEFAULT_FAILURE_MESSAGE, parse_failure_text


def test_splits_first_line_on_colon() -> None:
    detail = parse_failure_text(
        "java.lang.AssertionError: expected <1> but was <2>\nat Foo.bar(Foo.java:10)"
    )
    assert detail.kind is FailureKind.FAILURE
    assert detail.exception_class_name == "java.lang.AssertionError"
    assert detail.message == "expected <1> but was <2>"
    assert detail.stack_trace_body == "at Foo.bar(Foo.java:10)"


def test_first_line_without_colon_uses_placeholder() -> None:
    detail = parse_failure_text("SomeError\ntrace line")
    assert detail.exception_class_name == "SomeError"
    assert detail.message == DEFAULT_FAILURE_MESSAGE == "Failed"
    assert detail.stack_trace_body == "trace line"


def test_only_first_colon_splits() -> None:
    detail = parse_failure_text("java.lang.IllegalStateException: state: broken: badly")
    assert detail.exception_class_name == "java.lang.IllegalStateException"
    assert detail.message == "state: broken: badly"
    assert detail.stack_trace_body == ""


def test_colon_with_empty_message_keeps_it_empty() -> None:
    detail = parse_failure_text("junit.framework.AssertionFailedError:\n\tat Foo.test(Foo.java:3)")
    assert detail.exception_class_name == "junit.framework.AssertionFailedError"
    assert detail.message == ""
    assert detail.stack_trace_body == "\tat Foo.test(Foo.java:3)"


@pytest.mark.parametrize("raw", ["", None])
def test_empty_text_is_tolerated(raw) -> None:
    detail = parse_failure_text(raw)
    assert detail.exception_class_name == ""
    assert detail.message == "Failed"
    assert detail.stack_trace_body == ""


def test_carriage_returns_are_stripped() -> None:
    detail = parse_failure_text("E: boom\r\nat A.b(A.java:1)\r\nat C.d(C.java:2)\r\n", FailureKind.ERROR)
    assert detail.kind is FailureKind.ERROR
    assert detail.message == "boom"
    assert detail.stack_trace_body == "at A.b(A.java:1)\nat C.d(C.java:2)\n"


def test_custom_placeholder() -> None:
    detail = parse_failure_text("Crash", placeholder="Process crashed")
    assert detail.message == "Process crashed"
