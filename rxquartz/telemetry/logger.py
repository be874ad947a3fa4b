"""Structured OTel logging for router sessions.

:class:`LogContext` carries the dimensions every record of a session shares
(service, router endpoint, component). :class:`OTelLogger` stamps them onto
records emitted through an OTel ``Logger``, and :func:`format_log_record`
renders one record as a console line.
"""

import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from opentelemetry._logs import LogRecord, SeverityNumber

_ATTRIBUTE_KEYS = {
    "service": "service.name",
    "router": "router.endpoint",
    "component": "component.name",
}

_SEVERITY_TEXT = {
    SeverityNumber.DEBUG: "DEBUG",
    SeverityNumber.INFO: "INFO",
    SeverityNumber.WARN: "WARN",
    SeverityNumber.ERROR: "ERROR",
}


@dataclass(frozen=True)
class LogContext:
    """Dimensions attached to every record a logger emits.

    Attributes:
        service: Deployment or service name.
        router: ``"host:port"`` of the router the session talks to.
        component: ``"router"`` or ``"connection"``.
    """

    service: str = ""
    router: str = ""
    component: str = ""

    def as_attributes(self) -> dict[str, str]:
        """OTel attributes for the non-empty dimensions."""
        return {
            key: getattr(self, field)
            for field, key in _ATTRIBUTE_KEYS.items()
            if getattr(self, field)
        }

    def child(self, **overrides: str) -> "LogContext":
        return replace(self, **overrides)


def format_log_record(record: LogRecord) -> str:
    """Render a record as ``<utc time> [LEVEL] router/component source\\t: body``.

    Dimensions that are not set are left out of the prefix.
    """
    when = datetime.fromtimestamp((record.timestamp or 0) / 1e9, tz=UTC)
    attrs = record.attributes or {}
    dims = "/".join(
        str(attrs[key])
        for key in ("router.endpoint", "component.name")
        if attrs.get(key)
    )
    prefix = f"{dims} " if dims else ""
    return (
        f"{when:%Y-%m-%dT%H:%M:%SZ} [{record.severity_text}] "
        f"{prefix}{attrs.get('log.source', 'Unknown')}\t: {record.body}\n"
    )


class OTelLogger:
    """Emit OTel log records with a fixed source and context.

    Args:
        logger: OTel ``Logger`` from ``LoggerProvider.get_logger()``.
        source: Value of the ``log.source`` attribute.
        context: Dimensions added to every record.
        min_severity: Records below this severity are dropped. The router
            uses INFO unless verbose logging is configured.

    Example:
        >>> log = OTelLogger(provider.get_logger("rxquartz"), source="QuartzRouter",
        ...                  min_severity=SeverityNumber.INFO)
        >>> log.info("Connected", host="10.0.0.5")
        >>> log.debug("Received raw data: .UV1,5\\\\r")   # dropped
    """

    def __init__(
        self,
        logger,
        source: str,
        context: LogContext | None = None,
        min_severity: SeverityNumber | None = None,
    ):
        self._logger = logger
        self._source = source
        self._context = context or LogContext()
        self._min_severity = min_severity

    @property
    def min_severity(self) -> SeverityNumber | None:
        return self._min_severity

    def is_enabled(self, severity_number: SeverityNumber) -> bool:
        """Whether a record of this severity would be emitted."""
        if self._min_severity is None:
            return True
        return severity_number.value >= self._min_severity.value

    def log(self, severity_number: SeverityNumber, message: str, **attrs) -> None:
        if not self.is_enabled(severity_number):
            return
        self._logger.emit(
            LogRecord(
                timestamp=time.time_ns(),
                body=message,
                severity_text=_SEVERITY_TEXT.get(severity_number, severity_number.name),
                severity_number=severity_number,
                attributes={
                    "log.source": self._source,
                    **self._context.as_attributes(),
                    **attrs,
                },
            )
        )

    def debug(self, message: str, **attrs) -> None:
        self.log(SeverityNumber.DEBUG, message, **attrs)

    def info(self, message: str, **attrs) -> None:
        self.log(SeverityNumber.INFO, message, **attrs)

    def warning(self, message: str, **attrs) -> None:
        self.log(SeverityNumber.WARN, message, **attrs)

    def error(self, message: str, **attrs) -> None:
        self.log(SeverityNumber.ERROR, message, **attrs)

    def with_context(
        self,
        *,
        source: str | None = None,
        min_severity: SeverityNumber | None = None,
        **dimensions: str,
    ) -> "OTelLogger":
        """A logger sharing this one's OTel logger, with updated dimensions.

        ``source`` and ``min_severity`` are kept unless given.
        """
        return OTelLogger(
            self._logger,
            source=self._source if source is None else source,
            context=self._context.child(**dimensions),
            min_severity=self._min_severity if min_severity is None else min_severity,
        )
