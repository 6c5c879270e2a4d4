"""
Prometheus metrics for the regional collection pipeline.
"""

from prometheus_client import Counter, Gauge, Histogram, start_http_server


class CollectionMetrics:
    """
    Metrics collector for the fetch gateway, collector and scheduler.

    Counters track totals (always increasing).
    Gauges track current values (can go up/down).
    Histograms track distributions (latency, durations).
    """

    def __init__(self):
        # Gateway
        self.gateway_requests = Counter(
            "caq_gateway_requests_total",
            "Observation lookups by outcome",
            ["outcome"],  # real, fallback, cache_hit, shared
        )
        self.gateway_in_flight = Gauge(
            "caq_gateway_in_flight",
            "AirNow requests currently in flight",
        )
        self.gateway_latency = Histogram(
            "caq_gateway_request_latency_seconds",
            "AirNow request latency",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        # Collector
        self.cycles = Counter(
            "caq_collection_cycles_total",
            "Collection cycles by trigger and outcome",
            ["trigger", "outcome"],  # outcome: completed, failed, skipped
        )
        self.region_failures = Counter(
            "caq_collection_region_failures_total",
            "Regions that raised during a cycle",
        )
        self.records_written = Counter(
            "caq_collection_records_written_total",
            "Historical records upserted",
        )
        self.store_write_failures = Counter(
            "caq_store_write_failures_total",
            "Failed writes to the history store",
        )
        self.cycle_duration = Gauge(
            "caq_collection_last_cycle_duration_seconds",
            "Duration of the most recent collection cycle",
        )
        self.series_count = Gauge(
            "caq_history_series",
            "Persisted region/pollutant series",
        )

    def start_server(self, port: int = 9092):
        """Start Prometheus HTTP server."""
        start_http_server(port)

    def record_lookup(self, outcome: str):
        self.gateway_requests.labels(outcome=outcome).inc()

    def request_started(self):
        self.gateway_in_flight.inc()

    def request_finished(self, seconds: float):
        self.gateway_in_flight.dec()
        self.gateway_latency.observe(seconds)

    def record_cycle(self, trigger: str, outcome: str):
        self.cycles.labels(trigger=trigger, outcome=outcome).inc()

    def record_region_failure(self):
        self.region_failures.inc()

    def record_written(self, count: int = 1):
        self.records_written.inc(count)

    def record_store_write_failure(self):
        self.store_write_failures.inc()

    def set_cycle_duration(self, seconds: float):
        self.cycle_duration.set(seconds)

    def set_series_count(self, count: int):
        self.series_count.set(count)


# Module-level singleton
_metrics: CollectionMetrics | None = None


def get_metrics() -> CollectionMetrics:
    """Get or create metrics singleton."""
    global _metrics
    if _metrics is None:
        _metrics = CollectionMetrics()
    return _metrics
