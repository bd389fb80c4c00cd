"""Convert Android instrumentation test output into JUnit-style XML reports."""

from .builder import BuilderState, CaseRecord, FailureState, ReportBuilder, SuiteReport
from .converter import Converter, ReportingListener, output_dir_for, read_input, suite_name_for
from .errors import InputParseWarning, InvalidStateError, ReportError, ResourceError, SerializationError
from .events import FailureKind, OutputKind, TestIdentity, TestRunListener
from .failures import DEFAULT_FAILURE_MESSAGE, FailureDetail, parse_failure_text
from .parser import InstrumentationResultParser
from .serializer import build_document, render_report, write_report
from .settings import ReportSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    "BuilderState",
    "CaseRecord",
    "Converter",
    "DEFAULT_FAILURE_MESSAGE",
    "FailureDetail",
    "FailureKind",
    "FailureState",
    "InputParseWarning",
    "InstrumentationResultParser",
    "InvalidStateError",
    "OutputKind",
    "ReportBuilder",
    "ReportError",
    "ReportSettings",
    "ReportingListener",
    "ResourceError",
    "SerializationError",
    "SuiteReport",
    "TestIdentity",
    "TestRunListener",
    "build_document",
    "get_settings",
    "output_dir_for",
    "parse_failure_text",
    "read_input",
    "render_report",
    "suite_name_for",
    "write_report",
]
