"""Provider setup for rxquartz.

Components take their providers as constructor arguments; nothing here
touches the OTel globals. :func:`get_default_providers` is what a
:class:`~rxquartz.router.QuartzRouter` falls back to when it is given none.
"""

from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    MetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .exporters import ConsoleLogRecordExporter

SERVICE_NAME = "rxquartz"

_defaults: tuple[TracerProvider, LoggerProvider] | None = None


def _resource(service_name: str, service_version: str) -> Resource:
    return Resource.create(
        {"service.name": service_name, "service.version": service_version}
    )


def _log_processor(exporter: LogRecordExporter, batch: bool):
    if batch:
        return BatchLogRecordProcessor(exporter)
    return SimpleLogRecordProcessor(exporter)


def configure_telemetry(
    service_name: str = SERVICE_NAME,
    service_version: str = "",
    span_exporter: SpanExporter | None = None,
    log_exporter: LogRecordExporter | None = None,
    batch_logs: bool = True,
) -> tuple[TracerProvider, LoggerProvider]:
    """Build a tracer provider and a logger provider sharing one resource.

    Args:
        service_name: ``service.name`` resource attribute.
        service_version: ``service.version`` resource attribute.
        span_exporter: Receives spans through a batch processor, if given.
        log_exporter: Receives log records, if given.
        batch_logs: Batch log records (network exporters) or hand each
            one over as it is emitted (console).

    Example:
        >>> _, logger_provider = configure_telemetry(
        ...     service_name="studio-a-router",
        ...     log_exporter=ConsoleLogRecordExporter(),
        ...     batch_logs=False,
        ... )
        >>> router = QuartzRouter(config, logger_provider=logger_provider)
    """
    resource = _resource(service_name, service_version)

    tracer_provider = TracerProvider(resource=resource)
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    if log_exporter is not None:
        logger_provider.add_log_record_processor(_log_processor(log_exporter, batch_logs))

    return tracer_provider, logger_provider


def get_default_providers(
    service_name: str = SERVICE_NAME,
) -> tuple[TracerProvider, LoggerProvider]:
    """Shared providers writing unbatched console lines to stderr.

    Created on the first call; ``service_name`` is ignored afterwards.
    """
    global _defaults
    if _defaults is None:
        _defaults = configure_telemetry(
            service_name=service_name,
            log_exporter=ConsoleLogRecordExporter(),
            batch_logs=False,
        )
    return _defaults


def configure_metrics(
    service_name: str = SERVICE_NAME,
    service_version: str = "",
    metric_exporter: MetricExporter | None = None,
    export_interval_ms: int = 10_000,
    metric_reader: MetricReader | None = None,
) -> MeterProvider:
    """Build a meter provider for the engine counters.

    ``metric_reader`` (an ``InMemoryMetricReader`` in tests) wins over
    ``metric_exporter``, which is polled every ``export_interval_ms``.
    With neither, measurements are recorded and never exported.
    """
    readers: list[MetricReader] = []
    if metric_reader is not None:
        readers.append(metric_reader)
    elif metric_exporter is not None:
        readers.append(
            PeriodicExportingMetricReader(
                metric_exporter, export_interval_millis=export_interval_ms
            )
        )
    return MeterProvider(
        resource=_resource(service_name, service_version), metric_readers=readers
    )
