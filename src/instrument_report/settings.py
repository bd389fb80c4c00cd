"""Configuration for report generation, loaded from the environment."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import SerializationError
from .serializer import check_stylesheet


class ReportSettings(BaseSettings):
    """Report settings; every field can be overridden with ``INSTRUMENT_REPORT_<NAME>``."""

    # Output document
    stylesheet: str = "report.xsl"
    indent: str = "  "
    unknown_label: str = "unknown"
    failure_placeholder: str = "Failed"

    # Behavior
    include_run_output: bool = False

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="INSTRUMENT_REPORT_", case_sensitive=False)

    @field_validator("stylesheet")
    @classmethod
    def _valid_stylesheet(cls, value: str) -> str:
        try:
            return check_stylesheet(value)
        except SerializationError as exc:
            raise ValueError(str(exc)) from exc


@lru_cache(maxsize=1)
def get_settings() -> ReportSettings:
    return ReportSettings()


__all__ = ["ReportSettings", "get_settings"]
