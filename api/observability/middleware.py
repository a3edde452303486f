"""
Observability Middleware

Request-level tracing and logging for the readiness API. Every response
carries the trace and request identifiers so that a failing evaluation can be
followed from the client to the metrics lookup.
"""

import os
import time
import uuid
import logging
from flask import Flask, Response, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

# Batch evaluations legitimately run long; single requests should not
SLOW_REQUEST_MS = float(os.getenv('SLOW_REQUEST_MS', '2000'))
EXCLUDED_PATHS = {"/api/healthz"}


def _elapsed_ms() -> float:
    return round((time.perf_counter() - g.get('request_started', time.perf_counter())) * 1000, 2)


def add_observability_middleware(app: Flask):
    """Instrument the app with OpenTelemetry and log each completed request."""

    FlaskInstrumentor().instrument_app(app, excluded_urls=",".join(EXCLUDED_PATHS))

    @app.before_request
    def start_request_timer():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get('X-Request-ID') or uuid.uuid4().hex
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attribute("request.id", g.request_id)

    @app.after_request
    def log_request(response: Response) -> Response:
        duration_ms = _elapsed_ms()
        user_context = g.get('user_context')
        org_id = user_context.org_id if user_context else None

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)
            if org_id:
                span.set_attribute("organization.id", org_id)

        if request.path not in EXCLUDED_PATHS:
            fields = {
                "method": request.method,
                "path": request.path,
                "endpoint": request.endpoint,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "organization_id": org_id,
                "request_id": g.get('request_id')
            }
            if duration_ms > SLOW_REQUEST_MS and request.endpoint != 'readiness.evaluate_all_cells':
                logger.warning("Slow request", extra=fields)
            else:
                logger.info("Request completed", extra=fields)

        response.headers['X-Request-ID'] = g.get('request_id', '')
        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
