"""Shared OTel logging mixin for transport components."""

import time

from opentelemetry._logs import Logger, SeverityNumber
from opentelemetry._logs import LogRecord as OTelLogRecord

_SEVERITIES: dict[str, SeverityNumber] = {
    "DEBUG": SeverityNumber.DEBUG,
    "INFO": SeverityNumber.INFO,
    "WARN": SeverityNumber.WARN,
    "ERROR": SeverityNumber.ERROR,
}


class OTelLoggingMixin:
    """Mixin providing _log() for components that own an OTel logger.

    ``_min_severity`` drops records below the threshold, so a component
    can keep DEBUG traffic logs out of the sink unless asked for them.
    """

    _logger: Logger | None
    _name: str
    _min_severity: SeverityNumber = SeverityNumber.DEBUG

    def _log(self, body: str, level: str = "INFO") -> None:
        """Emit a log record via OTel logger if configured."""
        if self._logger is None:
            return
        severity = _SEVERITIES.get(level, SeverityNumber.INFO)
        if severity.value < self._min_severity.value:
            return
        record = OTelLogRecord(
            timestamp=time.time_ns(),
            body=body,
            severity_text=level,
            severity_number=severity,
            attributes={"log.source": self._name, "component.name": "connection"},
        )
        self._logger.emit(record)
