from __future__ import annotations

import io
import xml.etree.ElementTree as ET

import pytest
from pydantic import ValidationError

from instrument_report.builder import ReportBuilder
from instrument_report.errors import SerializationError
from instrument_report.events import TestIdentity
from instrument_report.serializer import render_report, write_report
from instrument_report.settings import ReportSettings


FOO_BAR = TestIdentity("pkg.Foo", "testBar")


def _finalized(builder: ReportBuilder, elapsed: int = 1500) -> ReportBuilder:
    builder.suite_started()
    builder.case_started(FOO_BAR)
    builder.case_ended(FOO_BAR)
    builder.suite_ended(elapsed)
    return builder


def _suite(data: bytes) -> ET.Element:
    root = ET.fromstring(data)
    assert root.tag == "testsuites"
    suites = root.findall("testsuite")
    assert len(suites) == 1
    return suites[0]


def test_prologue_has_declaration_and_stylesheet(builder: ReportBuilder) -> None:
    data = _finalized(builder).render()
    lines = data.decode("utf-8").split("\n")
    assert lines[0] == '<?xml version="1.0" encoding="UTF-8" ?>'
    assert lines[1] == '<?xml-stylesheet type="text/xsl" href="report.xsl" ?>'
    assert lines[2] == "<testsuites>"


def test_suite_attributes_and_case_layout(builder: ReportBuilder) -> None:
    suite = _suite(_finalized(builder).render())
    assert suite.attrib == {
        "timestamp": "2024-05-01T12:30:00",
        "time": "1.5",
        "classname": "pkg.Foo",
    }
    children = list(suite)
    assert [child.tag for child in children] == ["properties", "testcase"]
    assert len(children[0]) == 0
    case = children[1]
    assert case.attrib == {"name": "testBar", "classname": "pkg.Foo"}
    assert len(case) == 0


def test_suite_attribute_order_is_stable(builder: ReportBuilder) -> None:
    text = _finalized(builder).render().decode("utf-8")
    assert '<testsuite timestamp="2024-05-01T12:30:00" time="1.5" classname="pkg.Foo">' in text


def test_zero_elapsed_renders_as_zero_point_zero(builder: ReportBuilder) -> None:
    suite = _suite(_finalized(builder, elapsed=0).render())
    assert suite.attrib["time"] == "0.0"


def test_failure_children_carry_type_message_and_trace(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, "java.lang.AssertionError: expected <1> but was <2>\r\nat Foo.bar(Foo.java:10)")
    builder.case_errored(FOO_BAR, "java.lang.NullPointerException\nat Foo.baz(Foo.java:12)")
    builder.case_ended(FOO_BAR)
    builder.suite_ended(42)

    suite = _suite(builder.render())
    case = suite.find("testcase")
    assert case is not None
    failure, error = list(case)
    assert failure.tag == "failure"
    assert failure.attrib == {"message": "expected <1> but was <2>", "type": "java.lang.AssertionError"}
    assert failure.text == "at Foo.bar(Foo.java:10)"
    assert error.tag == "error"
    assert error.attrib == {"message": "Failed", "type": "java.lang.NullPointerException"}
    assert error.text == "at Foo.baz(Foo.java:12)"


def test_empty_message_attribute_is_omitted(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, "junit.framework.AssertionFailedError:\nat X.y(X.java:1)")
    builder.suite_ended(1)
    failure = _suite(builder.render()).find("testcase/failure")
    assert failure is not None
    assert "message" not in failure.attrib
    assert failure.attrib["type"] == "junit.framework.AssertionFailedError"


def test_markup_in_trace_is_escaped(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, 'E: a < b & "c"\n<tag attr="1"/> && done')
    builder.suite_ended(1)
    data = builder.render()
    failure = _suite(data).find("testcase/failure")
    assert failure is not None
    assert failure.attrib["message"] == 'a < b & "c"'
    assert failure.text == '<tag attr="1"/> && done'
    assert b"&lt;tag" in data


def test_system_output_is_written_as_cdata(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.system_output("at <init>(Foo.java:1) & more")
    builder.system_error("stderr text")
    builder.suite_ended(1)
    data = builder.render()
    assert b"<![CDATA[at <init>(Foo.java:1) & more]]>" in data
    suite = _suite(data)
    assert [child.tag for child in suite][-2:] == ["system-out", "system-err"]
    assert suite.find("system-err").text == "stderr text"


def test_cdata_terminator_in_output_stays_legal(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.system_output("x ]]> y")
    builder.suite_ended(1)
    suite = _suite(builder.render())
    assert suite.find("system-out").text == "x ]]> y"


def test_invalid_xml_characters_are_dropped(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, "E: bad\x00byte\nline\x1bwith escape")
    builder.suite_ended(1)
    failure = _suite(builder.render()).find("testcase/failure")
    assert failure is not None
    assert failure.attrib["message"] == "badbyte"
    assert failure.text == "linewith escape"


def test_properties_are_rendered(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.add_property("device", "emulator-5554")
    builder.suite_ended(1)
    prop = _suite(builder.render()).find("properties/property")
    assert prop is not None
    assert prop.attrib == {"name": "device", "value": "emulator-5554"}


def test_rendering_is_deterministic(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, "E: x\ny")
    builder.case_ended(TestIdentity("pkg.Foo", "testOther"))
    builder.system_output("out")
    builder.suite_ended(3)
    first = builder.render()
    second = render_report(builder.report)
    assert first == second
    assert builder.render() == first


def test_custom_stylesheet_and_indent(builder: ReportBuilder) -> None:
    report = _finalized(builder).report
    data = render_report(report, stylesheet="junit-noframes.xsl", indent="\t")
    text = data.decode("utf-8")
    assert 'href="junit-noframes.xsl"' in text
    assert "\n\t<testsuite " in text


class _FlushFailsSink(io.BytesIO):
    def flush(self) -> None:
        raise OSError("device gone")


def test_write_report_flush_failure_is_serialization_error(builder: ReportBuilder) -> None:
    report = _finalized(builder).report
    with pytest.raises(SerializationError):
        write_report(report, _FlushFailsSink())


def test_write_report_returns_byte_count(builder: ReportBuilder) -> None:
    report = _finalized(builder).report
    sink = io.BytesIO()
    written = write_report(report, sink)
    assert written == len(sink.getvalue()) == len(render_report(report))


def test_attribute_whitespace_survives_parsing(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.add_property("k", "a\nb\tc\rd")
    builder.case_failed(FOO_BAR, "E: first\tsecond")
    builder.suite_ended(1)
    data = builder.render()
    assert b'value="a&#10;b&#9;c&#13;d"' in data
    suite = _suite(data)
    assert suite.find("properties/property").attrib["value"] == "a\nb\tc\rd"
    assert suite.find("testcase/failure").attrib["message"] == "first\tsecond"


def test_trace_text_keeps_literal_newlines(builder: ReportBuilder) -> None:
    builder.suite_started()
    builder.case_failed(FOO_BAR, "E: x\nline one\nline two")
    builder.suite_ended(1)
    assert b"line one\nline two" in builder.render()


@pytest.mark.parametrize("href", ["evil?><root/>", 'a"b.xsl', "a\nb.xsl", "bad\x00.xsl"])
def test_unsafe_stylesheet_is_rejected(builder: ReportBuilder, href: str) -> None:
    report = _finalized(builder).report
    with pytest.raises(SerializationError, match="stylesheet"):
        render_report(report, stylesheet=href)


def test_unsafe_stylesheet_setting_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ReportSettings(stylesheet="x?>")
