import time
import threading
from typing import Optional

import requests

from upgrade_demo.config import logger
from upgrade_demo.errors import EndpointUnreachable, ReadinessTimeout, WaitCancelled
from upgrade_demo.logging import demo_logger
from upgrade_demo.metrics import gauges

HEALTH_PATH = "/actuator/health"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5
MIN_REQUEST_TIMEOUT_SECONDS = 0.1

def health_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{HEALTH_PATH}"

def probe(url: str, session=None, request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS):
    """
    Issue a single health probe.
    Raises EndpointUnreachable on connection errors, timeouts and non-2xx statuses.
    """
    http = session or requests
    try:
        r = http.get(url, timeout=request_timeout)
    except requests.exceptions.RequestException as e:
        raise EndpointUnreachable(f"{url}: {e}") from e
    if not 200 <= r.status_code < 300:
        raise EndpointUnreachable(f"{url}: HTTP {r.status_code}")
    return r

def wait_until_healthy(
    base_url: str,
    poll_interval_seconds: float,
    timeout_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    session=None,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
) -> int:
    """
    Polls the health endpoint until it answers with a 2xx status.

    Failed probes are absorbed: the loop sleeps poll_interval_seconds and tries again.
    With timeout_seconds=None it polls until the application answers. Otherwise it raises
    ReadinessTimeout once the deadline passes without a successful probe.
    Setting cancel_event stops the loop with WaitCancelled; the sleep between polls
    waits on the event so cancellation does not wait out a full interval.

    Returns the number of polls performed.
    """
    url = health_url(base_url)
    start_time = time.monotonic()
    deadline = None if timeout_seconds is None else start_time + timeout_seconds
    polls = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise WaitCancelled(f"Readiness wait for {url} cancelled after {polls} polls")

        poll_timeout = request_timeout
        if deadline is not None:
            # a slow probe must not carry the wait past the deadline
            poll_timeout = min(request_timeout, max(deadline - time.monotonic(), MIN_REQUEST_TIMEOUT_SECONDS))

        polls += 1
        try:
            probe(url, session=session, request_timeout=poll_timeout)
        except EndpointUnreachable as e:
            logger.debug(f"Not ready yet (poll {polls}): {e}")
        else:
            waited = time.monotonic() - start_time
            logger.info(f"{url} healthy after {polls} polls ({waited:.2f}s)")
            gauges.record_readiness_wait(waited)
            demo_logger.log_app_ready(url, polls, waited)
            return polls

        sleep_seconds = poll_interval_seconds
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ReadinessTimeout(url, timeout_seconds, polls)
            sleep_seconds = min(poll_interval_seconds, remaining)

        if cancel_event is not None:
            cancel_event.wait(sleep_seconds)
        else:
            time.sleep(sleep_seconds)
