from prometheus_client import Gauge, Histogram

"""
Metric Semantics

These gauges mirror the results table: one time series per observed run, labelled by
Java version, Spring Boot version and variant. A run recorded again overwrites its series,
the same way the table keeps only the latest sample.

The readiness histogram captures how long the application took to answer its health probe
after launch, which the actuator's own started-time metric does not include (JVM boot, jar extraction).
"""

LABELS = ["java_version", "spring_version", "variant"]

APPLICATION_STARTED_SECONDS = Gauge(
    "demo_application_started_seconds",
    "application.started.time reported by the actuator for the latest sample of a run.",
    LABELS
)

JVM_MEMORY_USED_BYTES = Gauge(
    "demo_jvm_memory_used_bytes",
    "jvm.memory.used reported by the actuator for the latest sample of a run.",
    LABELS
)

READINESS_WAIT_SECONDS = Histogram(
    "demo_readiness_wait_seconds",
    "Time spent polling the health endpoint until it answered successfully.",
    buckets=[0.5, 1, 2, 5, 10, 30, 60, 120]
)

def record_sample(descriptor, sample):
    """
    Export a recorded sample. Called for every upsert into the results matrix.
    """
    labels = {
        "java_version": descriptor.runtime_version,
        "spring_version": descriptor.framework_version,
        "variant": descriptor.variant,
    }
    APPLICATION_STARTED_SECONDS.labels(**labels).set(sample.started_time_seconds)
    JVM_MEMORY_USED_BYTES.labels(**labels).set(sample.memory_used_bytes)

def record_readiness_wait(wait_seconds: float):
    READINESS_WAIT_SECONDS.observe(wait_seconds)
