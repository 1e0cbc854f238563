"""OpenTelemetry logging and tracing service for orchestration runs"""

import contextlib
import logging
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace
from opentelemetry._logs import SeverityNumber, set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from niveflow.config import config
from niveflow.models.run_result import RunResult

logger = logging.getLogger(__name__)


class TelemetryService:
    """Handle OpenTelemetry logging and tracing for orchestration runs"""

    def __init__(self):
        self.logging_enabled = config.otel_enabled
        self.tracing_enabled = config.otel_tracing_enabled
        self.logger_provider = None
        self.tracer_provider = None
        self.otel_logger = None
        self.tracer = None

        # Initialize logging if enabled
        if self.logging_enabled:
            try:
                self._initialize_logging()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel logging: {e}. Logging disabled.")
                self.logging_enabled = False

        # Initialize tracing if enabled
        if self.tracing_enabled:
            try:
                self._initialize_tracing()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel tracing: {e}. Tracing disabled.")
                self.tracing_enabled = False

    def _resource(self) -> Resource:
        return Resource(
            attributes={
                SERVICE_NAME: config.otel_service_name,
                SERVICE_VERSION: config.otel_service_version,
            }
        )

    def _initialize_logging(self) -> None:
        """Initialize OpenTelemetry logging with OTLP log exporter"""
        self.logger_provider = LoggerProvider(resource=self._resource())

        log_endpoint = config.otel_endpoint
        if not log_endpoint.endswith("/v1/logs"):
            log_endpoint = f"{log_endpoint.rstrip('/')}/v1/logs"

        self.logger_provider.add_log_record_processor(
            BatchLogRecordProcessor(OTLPLogExporter(endpoint=log_endpoint))
        )
        set_logger_provider(self.logger_provider)
        self.otel_logger = self.logger_provider.get_logger(__name__)

        logger.info(f"OpenTelemetry logging initialized with endpoint: {log_endpoint}")

    def _initialize_tracing(self) -> None:
        """Initialize OpenTelemetry tracing with OTLP trace exporter"""
        self.tracer_provider = TracerProvider(resource=self._resource())

        trace_endpoint = config.otel_endpoint
        if not trace_endpoint.endswith("/v1/traces"):
            trace_endpoint = f"{trace_endpoint.rstrip('/')}/v1/traces"

        self.tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=trace_endpoint))
        )
        trace.set_tracer_provider(self.tracer_provider)
        self.tracer = self.tracer_provider.get_tracer(__name__)

        logger.info(f"OpenTelemetry tracing initialized with endpoint: {trace_endpoint}")

    @contextlib.contextmanager
    def span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[None]:
        """Trace a block as a span when tracing is enabled"""
        if not self.tracing_enabled or not self.tracer:
            yield
            return

        with self.tracer.start_as_current_span(name, attributes=attributes or {}):
            yield

    def log_run(
        self,
        force: bool,
        only: str | None,
        result: RunResult | None = None,
        error: Exception | None = None,
    ) -> None:
        """
        Log an orchestration run to OpenTelemetry

        Args:
            force: Whether the run was forced
            only: Source the run was restricted to, if any
            result: The run result (if the run completed)
            error: The error (if the run was aborted)
        """
        if not self.logging_enabled or not self.otel_logger:
            return

        try:
            success = error is None and result is not None and result.success

            # Low-cardinality attributes only
            attributes: dict[str, str | int | float | bool] = {
                "run.force": force,
                "run.scope": only or "all",
                "run.success": success,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

            body_parts = ["[orchestration_run]", "SUCCESS" if success else "FAILED"]
            body_parts.append(f"scope={only or 'all'}")

            if result is not None:
                attributes["run.duration_seconds"] = result.duration_seconds
                attributes["run.built_count"] = len(result.built)
                attributes["run.skipped_count"] = len(result.skipped)
                attributes["run.failed_count"] = len(result.failed)
                body_parts.append(
                    f"built={len(result.built)} skipped={len(result.skipped)} "
                    f"failed={len(result.failed)} time={result.duration_seconds:.1f}s"
                )
                if result.failed:
                    body_parts.append(f"failed_sources={','.join(result.failed)}")

            if error is not None:
                attributes["error.type"] = type(error).__name__
                error_message = str(error)
                if len(error_message) > 500:
                    error_message = error_message[:500] + "..."
                attributes["error.message"] = error_message
                body_parts.append(f"error={type(error).__name__}")

            severity = SeverityNumber.INFO if success else SeverityNumber.ERROR
            self.otel_logger.emit(
                body=" ".join(body_parts),
                severity_number=severity,
                attributes=attributes,
                timestamp=int(datetime.now(timezone.utc).timestamp() * 1e9),
            )

        except Exception as e:
            # Don't let telemetry errors break the application
            logger.warning(f"Failed to log telemetry: {e}")


# Global telemetry service instance
_telemetry_service: TelemetryService | None = None


def get_telemetry_service() -> TelemetryService:
    """Get or create the global telemetry service instance"""
    global _telemetry_service
    if _telemetry_service is None:
        _telemetry_service = TelemetryService()
    return _telemetry_service
