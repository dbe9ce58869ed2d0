import numbers

import requests

from upgrade_demo.errors import MetricUnavailable
from upgrade_demo.health.readiness import DEFAULT_REQUEST_TIMEOUT_SECONDS
from upgrade_demo.metrics.matrix import MetricSample

METRICS_PATH = "/actuator/metrics"
STARTED_TIME_METRIC = "application.started.time"
MEMORY_USED_METRIC = "jvm.memory.used"

def metric_url(base_url: str, metric_name: str) -> str:
    return f"{base_url.rstrip('/')}{METRICS_PATH}/{metric_name}"

def parse_measurement(metric_name: str, payload) -> float:
    """
    Extracts measurements[0].value from an actuator metric document.
    Example: {"name": "jvm.memory.used", "measurements": [{"statistic": "VALUE", "value": 187654321}]}
    """
    if not isinstance(payload, dict) or "measurements" not in payload:
        raise MetricUnavailable(metric_name, "response has no 'measurements'")
    measurements = payload["measurements"]
    if not isinstance(measurements, list) or not measurements:
        raise MetricUnavailable(metric_name, "'measurements' is empty")
    first = measurements[0]
    if not isinstance(first, dict) or "value" not in first:
        raise MetricUnavailable(metric_name, "first measurement has no 'value'")
    value = first["value"]
    # bool is an int subclass; a true/false here is not a measurement
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MetricUnavailable(metric_name, f"value {value!r} is not numeric")
    return float(value)

def fetch_metric(base_url: str, metric_name: str, session=None,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> float:
    http = session or requests
    url = metric_url(base_url, metric_name)
    try:
        r = http.get(url, timeout=request_timeout)
        r.raise_for_status()
        payload = r.json()
    except requests.exceptions.RequestException as e:
        raise MetricUnavailable(metric_name, str(e)) from e
    except ValueError as e:
        # requests' JSONDecodeError subclasses ValueError
        raise MetricUnavailable(metric_name, f"invalid JSON: {e}") from e
    return parse_measurement(metric_name, payload)

def fetch_sample(base_url: str, session=None,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> MetricSample:
    """Reads startup time and memory used; fails before anything is recorded if either is bad."""
    started = fetch_metric(base_url, STARTED_TIME_METRIC, session=session, request_timeout=request_timeout)
    memory = fetch_metric(base_url, MEMORY_USED_METRIC, session=session, request_timeout=request_timeout)
    return MetricSample(started_time_seconds=started, memory_used_bytes=memory)
