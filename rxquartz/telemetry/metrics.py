"""OTel metrics for the router engine.

:class:`MetricsHelper` wraps an OTel ``Meter``; :class:`RouterMetrics`
holds the counters the engine updates.
"""

from opentelemetry.metrics import Counter, Histogram, Meter, MeterProvider


class MetricsHelper:
    """Convenience wrapper around an OTel ``Meter``.

    Args:
        meter_provider: The provider to obtain a meter from.
        instrumentation_name: Identifies the instrumenting module,
            e.g. ``"rxquartz.router"``.
    """

    def __init__(self, meter_provider: MeterProvider, instrumentation_name: str):
        self._meter: Meter = meter_provider.get_meter(instrumentation_name)

    def counter(self, name: str, description: str = "", unit: str = "1") -> Counter:
        return self._meter.create_counter(name, description=description, unit=unit)

    def histogram(self, name: str, description: str = "", unit: str = "1") -> Histogram:
        return self._meter.create_histogram(name, description=description, unit=unit)


class RouterMetrics:
    """Counters for one router session.

    Attributes are recorded with a ``router`` label (``"host:port"``).
    """

    def __init__(self, meter_provider: MeterProvider):
        helper = MetricsHelper(meter_provider, "rxquartz.router")
        self.records_inbound = helper.counter(
            "quartz.records.inbound", description="Framed records received from the router"
        )
        self.commands_outbound = helper.counter(
            "quartz.commands.outbound", description="Command writes accepted for sending"
        )
        self.crosspoint_changes = helper.counter(
            "quartz.crosspoint.changes", description="Confirmed crosspoint changes applied"
        )
        self.protocol_errors = helper.counter(
            "quartz.protocol.errors", description=".E replies received from the router"
        )
