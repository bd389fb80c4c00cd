import sys
from datetime import datetime
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))

from instrument_report.builder import ReportBuilder  # noqa: E402
from instrument_report.settings import ReportSettings  # noqa: E402


FIXTURES = Path(__file__).parent / "fixtures" / "instrumentation"
FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0)


@pytest.fixture
def settings() -> ReportSettings:
    return ReportSettings()


@pytest.fixture
def builder(settings: ReportSettings) -> ReportBuilder:
    return ReportBuilder(settings=settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES
