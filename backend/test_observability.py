"""Tests for tracing helpers."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

import observability
from live_agent_system import AdmissionController
from models import ChatSession
from store import InMemoryChatStore


@pytest.fixture
def exporter(monkeypatch) -> InMemorySpanExporter:
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    monkeypatch.setattr(observability, "_tracer", provider.get_tracer("test"))
    return span_exporter


def test_helpers_are_noops_without_setup() -> None:
    observability.record_admission(True, False)
    observability.record_assignment("junior")
    observability.record_session_expired()
    observability.record_sweep_duration("assign", 1.0)
    with observability.trace_operation("noop") as span:
        assert span is None


def test_trace_operation_records_error(exporter: InMemorySpanExporter) -> None:
    with pytest.raises(ValueError):
        with observability.trace_operation("failing", {"chat.test": True}):
            raise ValueError("boom")

    (span,) = exporter.get_finished_spans()
    assert span.name == "failing"
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes["error.type"] == "ValueError"
    assert span.attributes["chat.test"] is True


async def test_admission_is_traced(exporter: InMemorySpanExporter) -> None:
    await AdmissionController(InMemoryChatStore()).queue_session(ChatSession(), is_office_hours=True)

    (span,) = exporter.get_finished_spans()
    assert span.name == "chat.queue_session"
    assert span.attributes["chat.office_hours"] is True
    assert span.attributes["chat.accepted"] is True
