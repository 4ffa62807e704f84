"""Prometheus metrics exposed by the relay."""

from prometheus_client import Counter, CollectorRegistry, generate_latest

class RelayMetrics:
    """Wrapper around the Prometheus registry used by the relay."""

    def __init__(self, registry: CollectorRegistry | None = None):
        """Create counters inside the provided registry."""
        self.registry = registry or CollectorRegistry()
        self.sent = Counter("smtp_relay_sent_total", "Total relayed emails", registry=self.registry)
        self.rejected = Counter(
            "smtp_relay_rejected_total", "Requests rejected by validation", ["reason"], registry=self.registry
        )
        self.failed = Counter("smtp_relay_failed_total", "SMTP session or send failures", registry=self.registry)
        self.rate_limited = Counter("smtp_relay_rate_limited_total", "Requests refused by the rate limiter", registry=self.registry)

    def inc_sent(self):
        self.sent.inc()

    def inc_rejected(self, reason: str):
        """Increase the ``rejected`` counter for a validation reason."""
        self.rejected.labels(reason=reason).inc()

    def inc_failed(self):
        self.failed.inc()

    def inc_rate_limited(self):
        self.rate_limited.inc()

    def generate_latest(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus text format."""
        return generate_latest(self.registry)
