import sys
import threading
from typing import Optional

from upgrade_demo.config import logger
from upgrade_demo.health.readiness import DEFAULT_REQUEST_TIMEOUT_SECONDS, wait_until_healthy
from upgrade_demo.metrics.actuator import fetch_sample
from upgrade_demo.metrics.matrix import ResultsMatrix, RunDescriptor

def display_message(message: str, stream=None):
    out = stream or sys.stdout
    out.write(f"#### {message}\n\n")
    out.flush()

def show_validation_table(matrix: ResultsMatrix, stream=None, title: str = "Application Validation Metrics"):
    out = stream or sys.stdout
    display_message(title, stream=out)
    out.write(matrix.render())
    out.flush()

def record_and_show(
    matrix: ResultsMatrix,
    descriptor: RunDescriptor,
    base_url: str,
    poll_interval_seconds: float = 1,
    timeout_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    session=None,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    stream=None,
):
    """
    Waits for the application to become healthy, samples its startup time and memory,
    upserts the sample into matrix and prints the whole table.

    MetricUnavailable, ReadinessTimeout and WaitCancelled propagate to the caller and leave
    matrix untouched. Returns the recorded MetricSample.
    """
    display_message("Check application health", stream=stream)
    wait_until_healthy(
        base_url,
        poll_interval_seconds,
        timeout_seconds=timeout_seconds,
        cancel_event=cancel_event,
        session=session,
        request_timeout=request_timeout,
    )
    sample = fetch_sample(base_url, session=session, request_timeout=request_timeout)

    previous = matrix.record(descriptor, sample)
    if previous is not None and previous != sample:
        logger.info(f"Replaced earlier sample for {descriptor}: {previous} -> {sample}")

    show_validation_table(matrix, stream=stream)
    return sample
