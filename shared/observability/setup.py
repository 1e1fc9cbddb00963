import logging
import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from shared.config import settings

# Health checks and scrapes are not traced or counted
QUIET_PATHS = ["/health", "/metrics"]


def add_otel_ids(logger, log_method, event_dict):
    """Stamps the active trace/span ids on a log line so logs join up with Jaeger."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def service_stamp(service_name: str):
    def add_service(logger, log_method, event_dict):
        event_dict.setdefault("service", service_name)
        return event_dict
    return add_service


def configure_logging(service_name: str, level: str = settings.LOG_LEVEL):
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            service_stamp(service_name),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_tracing(app: FastAPI, service_name: str):
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT, insecure=True))
    )
    trace.set_tracer_provider(provider)

    # One instrumentation on the root app covers every mounted service
    FastAPIInstrumentor.instrument_app(app, excluded_urls=",".join(QUIET_PATHS))
    # Notification and email calls become child spans of the request
    HTTPXClientInstrumentor().instrument()


def configure_metrics(app: FastAPI):
    Instrumentator(excluded_handlers=QUIET_PATHS).instrument(app).expose(app)


def setup_observability(app: FastAPI, service_name: str):
    """
    Logging, tracing and Prometheus metrics for the storefront.

    Runs once against the root app. Tracing is skipped when TRACING_ENABLED
    is off, which is how tests and local runs without a collector start.
    """
    configure_logging(service_name)
    if settings.TRACING_ENABLED:
        configure_tracing(app, service_name)
    configure_metrics(app)
