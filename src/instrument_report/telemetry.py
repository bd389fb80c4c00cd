"""Telemetry primitives for report builder state transitions and outcomes."""

from __future__ import annotations

from typing import Mapping

from opentelemetry import metrics

_meter = metrics.get_meter("instrument-report.builder")

state_transition_counter = _meter.create_counter(
    "report_builder_transitions_total",
    unit="1",
    description="Total number of report builder state transitions.",
)

case_outcome_counter = _meter.create_counter(
    "report_case_outcomes_total",
    unit="1",
    description="Test cases written to reports, by outcome.",
)

suite_elapsed_histogram = _meter.create_histogram(
    "report_suite_elapsed_seconds",
    unit="s",
    description="Device reported elapsed time of finalized suites.",
)


def record_transition(
    *,
    previous_state: str,
    next_state: str,
    attributes: Mapping[str, str] | None = None,
) -> None:
    """Record telemetry for a builder state transition."""

    attrs: dict[str, str] = {"from": previous_state, "to": next_state}
    if attributes:
        attrs.update(attributes)
    state_transition_counter.add(1, attrs)


def record_suite(*, outcomes: Mapping[str, int], elapsed_s: float) -> None:
    """Record per-outcome case counts and elapsed time for a finalized suite."""

    for outcome, count in outcomes.items():
        if count:
            case_outcome_counter.add(count, {"outcome": outcome})
    suite_elapsed_histogram.record(elapsed_s)


__all__ = [
    "case_outcome_counter",
    "record_suite",
    "record_transition",
    "state_transition_counter",
    "suite_elapsed_histogram",
]
