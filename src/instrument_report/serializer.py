"""Rendering of a finalized suite report as JUnit-style XML."""

from __future__ import annotations

import contextlib
import io
import re
from typing import TYPE_CHECKING, BinaryIO
from xml.dom import minidom

from .errors import SerializationError

if TYPE_CHECKING:
    from .builder import SuiteReport

TESTSUITES = "testsuites"
TESTSUITE = "testsuite"
PROPERTIES = "properties"
PROPERTY = "property"
TESTCASE = "testcase"

ATTR_NAME = "name"
ATTR_VALUE = "value"
ATTR_CLASSNAME = "classname"
ATTR_TIMESTAMP = "timestamp"
ATTR_TIME = "time"
ATTR_MESSAGE = "message"
ATTR_TYPE = "type"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" ?>\n'
STYLESHEET_PI = '<?xml-stylesheet type="text/xsl" href="{href}" ?>\n'

_CDATA_END = "]]>"
_INVALID_XML_CHARS = re.compile("[^\t\n\r\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _clean(value: str) -> str:
    """Drop characters that XML 1.0 cannot represent, even as references."""

    return _INVALID_XML_CHARS.sub("", value)


# U+FFFE never survives _clean; it stands in for "&#" until the document is written.
_CHARREF_MARK = "\ufffe"
_ATTR_WHITESPACE = str.maketrans(
    {
        "\t": _CHARREF_MARK + "9;",
        "\n": _CHARREF_MARK + "10;",
        "\r": _CHARREF_MARK + "13;",
    }
)


def _attr(value: str) -> str:
    """Clean an attribute value and keep its whitespace from being normalized."""

    return _clean(value).translate(_ATTR_WHITESPACE)


def check_stylesheet(href: str) -> str:
    """Return ``href`` if it can be written as an ``xml-stylesheet`` pseudo-attribute."""

    if "?>" in href or any(ch in href for ch in "\"\n\r") or _INVALID_XML_CHARS.search(href):
        raise SerializationError(f"Invalid stylesheet reference: {href!r}")
    return href


def build_document(report: "SuiteReport", *, unknown_label: str = "unknown") -> minidom.Document:
    """Build a fresh DOM for ``report``; the report itself is never mutated."""

    doc = minidom.getDOMImplementation().createDocument(None, TESTSUITES, None)
    suite = doc.createElement(TESTSUITE)
    suite.setAttribute(ATTR_TIMESTAMP, report.timestamp)
    if report.elapsed_millis is not None:
        suite.setAttribute(ATTR_TIME, repr(report.elapsed_millis / 1000.0))
    suite.setAttribute(ATTR_CLASSNAME, _attr(report.classname or unknown_label))

    props = doc.createElement(PROPERTIES)
    for name, value in report.properties:
        prop = doc.createElement(PROPERTY)
        prop.setAttribute(ATTR_NAME, _attr(name))
        prop.setAttribute(ATTR_VALUE, _attr(value))
        props.appendChild(prop)
    suite.appendChild(props)

    for record in report.cases.values():
        case = doc.createElement(TESTCASE)
        case.setAttribute(ATTR_NAME, _attr(record.identity.test_name or unknown_label))
        case.setAttribute(ATTR_CLASSNAME, _attr(record.identity.class_name))
        for failure in record.failures:
            nested = doc.createElement(failure.kind.tag)
            if failure.message:
                nested.setAttribute(ATTR_MESSAGE, _attr(failure.message))
            nested.setAttribute(ATTR_TYPE, _attr(failure.exception_class_name))
            nested.appendChild(doc.createTextNode(_clean(failure.stack_trace_body.replace("\r", ""))))
            case.appendChild(nested)
        suite.appendChild(case)

    for kind, text in report.outputs:
        nested = doc.createElement(kind.tag)
        text = _clean(text)
        if _CDATA_END in text:
            # A CDATA section cannot contain its own terminator.
            nested.appendChild(doc.createTextNode(text))
        else:
            nested.appendChild(doc.createCDATASection(text))
        suite.appendChild(nested)

    doc.documentElement.appendChild(suite)
    return doc


def render_report(
    report: "SuiteReport",
    *,
    stylesheet: str = "report.xsl",
    indent: str = "  ",
    unknown_label: str = "unknown",
) -> bytes:
    """Return the UTF-8 encoded XML document for ``report``."""

    check_stylesheet(stylesheet)
    doc = build_document(report, unknown_label=unknown_label)
    body = io.StringIO()
    doc.documentElement.writexml(body, indent="", addindent=indent, newl="\n")
    doc.unlink()
    text = XML_DECLARATION + STYLESHEET_PI.format(href=stylesheet)
    text += body.getvalue().replace(_CHARREF_MARK, "&#")
    return text.encode("utf-8")


def write_report(
    report: "SuiteReport",
    sink: BinaryIO,
    *,
    stylesheet: str = "report.xsl",
    indent: str = "  ",
    unknown_label: str = "unknown",
) -> int:
    """Write the rendered report to a binary ``sink`` and flush it.

    Returns the number of bytes written.  I/O failures are raised as
    :class:`SerializationError`; the sink is flushed on every path but never
    closed, which is left to whoever opened it.
    """

    data = render_report(report, stylesheet=stylesheet, indent=indent, unknown_label=unknown_label)
    try:
        sink.write(data)
    except OSError as exc:
        with contextlib.suppress(OSError):
            sink.flush()
        raise SerializationError(f"Unable to write report: {exc}") from exc
    try:
        sink.flush()
    except OSError as exc:
        raise SerializationError(f"Unable to flush report: {exc}") from exc
    return len(data)


__all__ = ["build_document", "check_stylesheet", "render_report", "write_report"]
