"""
OpenTelemetry Observability Module.
Provides distributed tracing for SalesPulse services.
"""
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from backend.app.core.logging import get_logger

logger = get_logger(__name__)


def setup_tracing(app=None):
    """Initializes OpenTelemetry tracing."""
    # Console exporter for now; swap for OTLP when a collector is deployed
    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    if app:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("OpenTelemetry FastAPI instrumentation enabled.")


def get_tracer(name: str):
    """Returns a tracer instance."""
    return trace.get_tracer(name)
