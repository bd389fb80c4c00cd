"""Parsing of raw failure text reported by the device."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import InputParseWarning
from .events import FailureKind

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Failed"


@dataclass(frozen=True, slots=True)
class FailureDetail:
    """A single failure or error attached to a test case."""

    kind: FailureKind
    exception_class_name: str
    message: str
    stack_trace_body: str


def parse_failure_text(
    raw: str,
    kind: FailureKind = FailureKind.FAILURE,
    *,
    placeholder: str = DEFAULT_FAILURE_MESSAGE,
) -> FailureDetail:
    """Split raw failure text into exception class, message and trace body.

    The first line is split on its first colon: the left side names the
    exception class, the right side (trimmed) is the message.  Without a
    colon the whole line is the class name and ``placeholder`` is used as the
    message.  Everything after the first line becomes the trace body.

    Malformed text is never fatal; it is logged and parsed best-effort.
    """

    text = (raw or "").replace("\r", "")
    first_line, _, body = text.partition("\n")
    class_name, sep, message = first_line.partition(":")
    class_name = class_name.strip()
    message = message.strip() if sep else placeholder
    if not sep:
        logger.debug(
            "report.failure.unparsed",
            extra={"category": InputParseWarning.__name__, "first_line": first_line},
        )
    return FailureDetail(
        kind=kind,
        exception_class_name=class_name,
        message=message,
        stack_trace_body=body,
    )


__all__ = ["DEFAULT_FAILURE_MESSAGE", "FailureDetail", "parse_failure_text"]
