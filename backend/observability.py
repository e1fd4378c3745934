# backend/observability.py
"""
OpenTelemetry observability for the chat queue engine.
Provides tracing and metrics for admissions, assignments and liveness sweeps.
"""

import logging
import time
from typing import Optional, Dict, Any
from contextlib import contextmanager

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.trace import Status, StatusCode

from config import ENVIRONMENT, OTEL_ENDPOINT, SERVICE_NAME

logger = logging.getLogger(__name__)

# Global providers
_tracer_provider: Optional[TracerProvider] = None
_meter_provider: Optional[MeterProvider] = None
_tracer: Optional[trace.Tracer] = None
_meter: Optional[metrics.Meter] = None

# Metrics
_admission_counter = None
_assignment_counter = None
_expired_session_counter = None
_sweep_duration_histogram = None


def setup_observability(
    service_name: str = SERVICE_NAME,
    otel_endpoint: str = OTEL_ENDPOINT,
    environment: str = ENVIRONMENT
) -> tuple[trace.Tracer, metrics.Meter]:
    """
    Initialize OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for identification
        otel_endpoint: OTLP endpoint URL (without /v1/traces or /v1/metrics)
        environment: Deployment environment (dev, staging, production)

    Returns:
        Tuple of (tracer, meter) for creating spans and metrics
    """
    global _tracer_provider, _meter_provider, _tracer, _meter
    global _admission_counter, _assignment_counter, _expired_session_counter, _sweep_duration_histogram

    if _tracer and _meter:
        logger.info("OpenTelemetry already initialized")
        return _tracer, _meter

    logger.info("Initializing OpenTelemetry for %s", service_name)

    resource = Resource.create({
        "service.name": service_name,
        "deployment.environment": environment,
    })

    # === TRACING SETUP ===
    _tracer_provider = TracerProvider(resource=resource)
    _tracer_provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=f"{otel_endpoint}/v1/traces", headers={}),
            max_queue_size=2048,
            max_export_batch_size=512,
            schedule_delay_millis=5000
        )
    )
    trace.set_tracer_provider(_tracer_provider)
    _tracer = trace.get_tracer(service_name)

    logger.info("Tracing configured: %s/v1/traces", otel_endpoint)

    # === METRICS SETUP ===
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{otel_endpoint}/v1/metrics", headers={}),
        export_interval_millis=10000
    )
    _meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(_meter_provider)
    _meter = metrics.get_meter(service_name)

    logger.info("Metrics configured: %s/v1/metrics", otel_endpoint)

    # === CREATE METRICS ===

    _admission_counter = _meter.create_counter(
        name="chat.admissions",
        description="Chat admission decisions",
        unit="1"
    )

    _assignment_counter = _meter.create_counter(
        name="chat.assignments",
        description="Chats assigned to agents",
        unit="1"
    )

    _expired_session_counter = _meter.create_counter(
        name="chat.sessions.expired",
        description="Queued chats marked inactive after missing polls",
        unit="1"
    )

    _sweep_duration_histogram = _meter.create_histogram(
        name="chat.sweep.duration",
        description="Duration of assignment and liveness sweeps",
        unit="ms"
    )

    return _tracer, _meter


@contextmanager
def trace_operation(
    operation_name: str,
    attributes: Optional[Dict[str, Any]] = None,
    record_exception: bool = True
):
    """
    Context manager for tracing operations with automatic error handling.

    Usage:
        with trace_operation("chat.assign_pending") as span:
            ...
    """
    if not _tracer:
        yield None
        return

    with _tracer.start_as_current_span(operation_name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        start_time = time.time()

        try:
            yield span
            span.set_status(Status(StatusCode.OK))

        except Exception as e:
            if record_exception:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute("error.type", type(e).__name__)
            raise

        finally:
            span.set_attribute("duration_ms", (time.time() - start_time) * 1000)


def record_admission(accepted: bool, overflow_used: bool):
    """Record an admission decision."""
    if _admission_counter:
        _admission_counter.add(
            1,
            {
                "result": "accepted" if accepted else "rejected",
                "overflow": str(overflow_used).lower()
            }
        )


def record_assignment(agent_level: str):
    """Record a chat handed to an agent of the given tier."""
    if _assignment_counter:
        _assignment_counter.add(1, {"agent.level": agent_level})


def record_session_expired():
    """Record a queued chat going stale."""
    if _expired_session_counter:
        _expired_session_counter.add(1)


def record_sweep_duration(sweep: str, duration_ms: float):
    """Record how long one sweep took."""
    if _sweep_duration_histogram:
        _sweep_duration_histogram.record(duration_ms, {"sweep": sweep})


def shutdown_observability():
    """Gracefully shutdown OpenTelemetry providers."""
    global _tracer_provider, _meter_provider, _tracer, _meter
    global _admission_counter, _assignment_counter, _expired_session_counter, _sweep_duration_histogram

    logger.info("Shutting down OpenTelemetry")

    if _tracer_provider:
        _tracer_provider.force_flush(timeout_millis=5000)
        _tracer_provider.shutdown()

    if _meter_provider:
        _meter_provider.force_flush(timeout_millis=5000)
        _meter_provider.shutdown()

    _tracer_provider = _meter_provider = _tracer = _meter = None
    _admission_counter = _assignment_counter = None
    _expired_session_counter = _sweep_duration_histogram = None
