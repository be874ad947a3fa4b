"""OTel log-record exporter for console output."""

import sys
from collections.abc import Sequence

from opentelemetry.sdk._logs._internal import ReadableLogRecord
from opentelemetry.sdk._logs.export import (
    LogRecordExporter,
    LogRecordExportResult,
)

from .logger import format_log_record


class ConsoleLogRecordExporter(LogRecordExporter):
    """OTel LogRecordExporter that writes one readable line per record.

    Unlike OTel's ConsoleLogExporter, which prints verbose JSON, this
    produces lines an operator can follow while the router link runs:

        2026-02-03T10:30:00Z [INFO] 10.0.0.5:23 QuartzRouter\t: Route: Cam 2 (5) -> Mon 1 (1) (Level V)

    Args:
        stream: Where to write; defaults to ``sys.stderr`` at export time.
    """

    def __init__(self, stream=None):
        self._stream = stream

    def _target(self):
        return self._stream if self._stream is not None else sys.stderr

    def export(self, batch: Sequence[ReadableLogRecord]) -> LogRecordExportResult:
        try:
            target = self._target()
            for readable_record in batch:
                target.write(format_log_record(readable_record.log_record))
            target.flush()
            return LogRecordExportResult.SUCCESS
        except Exception:
            return LogRecordExportResult.FAILURE

    def shutdown(self) -> None:
        """Shutdown the exporter (no-op for console)."""
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        self._target().flush()
        return True
