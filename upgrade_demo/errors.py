"""Exceptions raised by the readiness waiter, the metrics recorder and the demo driver."""


class UpgradeDemoError(Exception):
    """Base class for every error the demo surfaces to its driver."""


class EndpointUnreachable(UpgradeDemoError):
    """A health probe failed: connection refused, timeout or non-2xx status.

    Transient. The readiness waiter absorbs it and polls again.
    """


class ReadinessTimeout(UpgradeDemoError):
    """The application did not report healthy before the deadline."""

    def __init__(self, url: str, timeout: float, polls: int):
        super().__init__(f"{url} not healthy after {timeout:.1f}s ({polls} polls)")
        self.url = url
        self.timeout = timeout
        self.polls = polls


class WaitCancelled(UpgradeDemoError):
    """The readiness wait was cancelled before the application became healthy."""


class MetricUnavailable(UpgradeDemoError):
    """A metric was missing or malformed after the health check passed.

    Not retried: it points at an incompatible application, not a slow one.
    """

    def __init__(self, metric: str, reason: str):
        super().__init__(f"Metric '{metric}' unavailable: {reason}")
        self.metric = metric
        self.reason = reason


class MissingDependency(UpgradeDemoError):
    """A command-line tool the demo shells out to is not installed."""

    def __init__(self, tool: str):
        super().__init__(f"{tool} not found. Please install {tool} first.")
        self.tool = tool
