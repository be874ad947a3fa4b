"""OpenTelemetry helpers for rxquartz components.

Provider configuration, a structured logger wrapper, the console
log-record exporter, and the engine's metric counters.
"""

from .config import (
    configure_metrics,
    configure_telemetry,
    get_default_providers,
)
from .exporters import ConsoleLogRecordExporter
from .logger import (
    LogContext,
    OTelLogger,
    format_log_record,
)
from .metrics import MetricsHelper, RouterMetrics

__all__ = [
    # config
    "configure_telemetry",
    "configure_metrics",
    "get_default_providers",
    # logger
    "OTelLogger",
    "LogContext",
    "format_log_record",
    # exporters
    "ConsoleLogRecordExporter",
    # metrics
    "MetricsHelper",
    "RouterMetrics",
]
