"""
JSON logging and OpenTelemetry providers for the Case Activity service.

Logging is configured when this module is imported. Trace and metric providers
are installed by the entry point through setup_opentelemetry(); until then the
module-level tracer and meter are no-op proxies, so services and tests can
import them freely.
"""
import logging
from typing import List

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME as ResourceAttributesServiceName
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from pythonjsonlogger import jsonlogger

from case_activity_service.app.config import settings

logger = logging.getLogger("case_activity_service")

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(lineno)d "
    "%(otelTraceID)s %(otelSpanID)s %(message)s"
)


def setup_json_logging():
    root_logger = logging.getLogger()
    if any(isinstance(h.formatter, jsonlogger.JsonFormatter) for h in root_logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(
        fmt=LOG_FORMAT,
        rename_fields={"levelname": "level", "name": "logger_name", "asctime": "timestamp"},
    ))
    root_logger.handlers = [handler]
    level = settings.LOG_LEVEL.upper()
    root_logger.setLevel(level)
    logger.setLevel(level)
    logger.info(f"JSON logging configured at level {level}.")


def _span_processors() -> List[BatchSpanProcessor]:
    processors = [BatchSpanProcessor(ConsoleSpanExporter())]
    endpoint = settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
    if endpoint:
        logger.info(f"Exporting spans over OTLP to {endpoint}.")
        processors.append(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    return processors


def _metric_readers() -> List[MetricReader]:
    readers: List[MetricReader] = [
        PeriodicExportingMetricReader(ConsoleMetricExporter(), export_interval_millis=60000)
    ]
    endpoint = settings.OTEL_EXPORTER_OTLP_METRICS_ENDPOINT
    if endpoint:
        logger.info(f"Exporting metrics over OTLP to {endpoint}.")
        readers.append(PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint, insecure=True), export_interval_millis=5000))
    return readers


def setup_opentelemetry(service_name: str):
    resource = Resource(attributes={ResourceAttributesServiceName: service_name})

    tracer_provider = TracerProvider(resource=resource)
    for processor in _span_processors():
        tracer_provider.add_span_processor(processor)
    trace.set_tracer_provider(tracer_provider)

    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=_metric_readers()))
    logger.info(f"OpenTelemetry tracer and meter providers installed for {service_name}.")


setup_json_logging()

tracer = trace.get_tracer("case_activity_service.tracer")
meter = metrics.get_meter("case_activity_service.meter")

# --- Custom Metrics Definitions ---
case_events_appended_counter = meter.create_counter(
    name="case_activity.case_events.appended.total",
    description="Counts case events appended to the audit log, partitioned by event type.",
    unit="1"
)

notifications_created_counter = meter.create_counter(
    name="case_activity.notifications.created.total",
    description="Counts in-app notifications written, partitioned by notification type.",
    unit="1"
)

notification_queue_dropped_counter = meter.create_counter(
    name="case_activity.notifications.queue.dropped.total",
    description="Counts notification requests dropped because the dispatch queue was full or stopped.",
    unit="1"
)

email_delivery_attempts_counter = meter.create_counter(
    name="case_activity.email.delivery.attempts.total",
    description="Counts individual mail transport send attempts, including retries.",
    unit="1"
)

email_delivery_outcomes_counter = meter.create_counter(
    name="case_activity.email.delivery.outcomes.total",
    description="Counts final email delivery outcomes (sent, failed, not_configured).",
    unit="1"
)

scheduled_job_duration_histogram = meter.create_histogram(
    name="case_activity.jobs.duration.seconds",
    description="Measures the wall-clock duration of scheduled job runs.",
    unit="s"
)
logger.info("Custom metrics (Counters, Histogram) defined in observability.py.")
