"""Observability setup for OpenTelemetry, Prometheus metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "rail-reservation-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Reservation metrics
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['train_id'],
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled',
    ['train_id'],
    registry=REGISTRY
)

BOOKINGS_DELETED = Counter(
    'bookings_deleted_total',
    'Total cancelled bookings deleted',
    registry=REGISTRY
)

BOOKING_REJECTIONS = Counter(
    'booking_rejections_total',
    'Booking lifecycle operations rejected, by error code',
    ['operation', 'reason'],
    registry=REGISTRY
)

CAPACITY_OVERFLOWS = Counter(
    'inventory_capacity_overflows_total',
    'Seat releases refused because they would exceed total capacity',
    ['train_id'],
    registry=REGISTRY
)

INVENTORY_DRIFT_DETECTED = Counter(
    'inventory_drift_detected_total',
    'Trains found with a seat counter that disagrees with their bookings',
    ['train_id'],
    registry=REGISTRY
)

INVENTORY_DRIFT_REPAIRED = Counter(
    'inventory_drift_repaired_total',
    'Drifted seat counters overwritten by reconciliation',
    ['train_id'],
    registry=REGISTRY
)

SEATS_AVAILABLE = Gauge(
    'train_seats_available',
    'Available seats per train after the last mutation',
    ['train_id'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing, exporting over OTLP when an endpoint is configured."""
    provider = TracerProvider(resource=_resource())
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics export (Prometheus scraping works regardless)."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))
    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for reservation metrics."""

    @staticmethod
    def record_booking_created(train_id: str, available_seats: int):
        BOOKINGS_CREATED.labels(train_id=train_id).inc()
        SEATS_AVAILABLE.labels(train_id=train_id).set(available_seats)

    @staticmethod
    def record_booking_cancelled(train_id: str, available_seats: int):
        BOOKINGS_CANCELLED.labels(train_id=train_id).inc()
        SEATS_AVAILABLE.labels(train_id=train_id).set(available_seats)

    @staticmethod
    def record_booking_deleted():
        BOOKINGS_DELETED.inc()

    @staticmethod
    def record_rejection(operation: str, reason: str):
        """Record a lifecycle operation refused with a domain error code."""
        BOOKING_REJECTIONS.labels(operation=operation, reason=reason).inc()

    @staticmethod
    def record_capacity_overflow(train_id: str):
        CAPACITY_OVERFLOWS.labels(train_id=train_id).inc()

    @staticmethod
    def record_drift(train_id: str, repaired: bool):
        INVENTORY_DRIFT_DETECTED.labels(train_id=train_id).inc()
        if repaired:
            INVENTORY_DRIFT_REPAIRED.labels(train_id=train_id).inc()

    @staticmethod
    def set_available_seats(train_id: str, available_seats: int):
        SEATS_AVAILABLE.labels(train_id=train_id).set(available_seats)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


def get_logger(name: str):
    """Get a structlog logger for integrity events that must stand out."""
    return structlog.get_logger(name)


# Global metrics collector instance
metrics_collector = MetricsCollector()
