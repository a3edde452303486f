"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the multiplication readiness API.
"""

import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'celulas-multiplication-api'

SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5,
}


def setup_observability():
    """Initialize OpenTelemetry instrumentation based on environment configuration."""
    environment = os.getenv('ENVIRONMENT', 'development')
    otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    setup_structured_logging(environment)

    if not otel_enabled:
        # Without a provider the API hands out no-op tracers
        return

    sampler = TraceIdRatioBased(SAMPLING_RATIOS.get(environment, 1.0))

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=sampler,
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = None
        if os.getenv('OTEL_API_KEY'):
            headers = {"Authorization": f"Bearer {os.getenv('OTEL_API_KEY')}"}
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(otlp_exporter, max_export_batch_size=512)
        )

    if environment == 'development' and os.getenv('OTEL_CONSOLE_EXPORTER', 'false').lower() == 'true':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)


class TraceContextFilter(logging.Filter):
    """Adds the active trace and span IDs to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = format(span_context.trace_id, "032x")
            record.span_id = format(span_context.span_id, "016x")
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


def setup_structured_logging(environment: str):
    """Configure logging with trace correlation."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.DEBUG
    }.get(environment, logging.INFO)

    handler = logging.StreamHandler()
    handler.addFilter(TraceContextFilter())
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s'
    ))

    logging.basicConfig(level=log_level, handlers=[handler])

    if environment == 'production':
        # Production: Reduce noise, focus on errors and business events
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('pymongo').setLevel(logging.WARNING)
    elif environment == 'development':
        logging.getLogger('pymongo').setLevel(logging.INFO)
