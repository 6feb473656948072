"""OpenTelemetry setup for kvquery."""

from loguru import logger
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor

from kvquery.settings import Settings, settings as default_settings

# Track if we've already set up instrumentation
_instrumentation_setup = False


def setup_instrumentation(config: Settings | None = None) -> None:
    """Initialize OpenTelemetry tracing for namespace operations.

    This function is idempotent and safe to call multiple times.
    Subsequent calls after successful initialization are no-ops.

    Architecture:
        - Spans flow to an OTEL Collector via OTLP (OTEL_EXPORTER_OTLP_ENDPOINT)
        - SimpleSpanProcessor used (no batching, lower memory)

    Args:
        config: Settings to read (defaults to the module settings)
    """
    global _instrumentation_setup

    config = config or default_settings

    if not config.otel.enabled:
        logger.debug("OTEL instrumentation disabled")
        return

    if _instrumentation_setup:
        logger.debug("OTEL instrumentation already configured")
        return

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        resource = Resource.create(
            {
                "service.name": config.otel.service_name,
                "kvquery.project.name": config.project_name,
            }
        )

        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        exporter = OTLPSpanExporter(insecure=True)
        tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))

        _instrumentation_setup = True

        logger.success(
            f"OTEL instrumentation configured for {config.otel.service_name} "
            f"(exports to OTEL collector)"
        )

    except Exception as e:
        logger.error(f"Failed to setup OTEL instrumentation: {e}")
        raise RuntimeError(
            "OTEL instrumentation setup failed. "
            "Check configuration or disable with OTEL__ENABLED=false"
        ) from e
