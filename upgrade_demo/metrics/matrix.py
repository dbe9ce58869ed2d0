import re
from dataclasses import asdict, dataclass
from typing import Dict, Iterator, Optional, Tuple

from upgrade_demo.logging import demo_logger
from upgrade_demo.metrics import gauges

COLUMN_WIDTHS = (15, 15, 15, 20, 20)
HEADERS = ("Java Version", "Spring Version", "App Type", "Startup Time (s)", "Memory Used (bytes)")
UNDERLINES = ("------------", "-------------", "--------", "----------------", "------------------")

_CHUNK = re.compile(r"(\d+)")


@dataclass(frozen=True)
class RunDescriptor:
    """Identifies one observed run. Two samples with equal descriptors are the same row."""
    runtime_version: str
    framework_version: str
    variant: str

    def sort_key(self) -> Tuple:
        fields = (self.runtime_version, self.framework_version, self.variant)
        # raw fields break ties such as "08" vs "8"
        return tuple(_natural_key(field) for field in fields) + fields

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MetricSample:
    started_time_seconds: float
    memory_used_bytes: float

    def as_dict(self) -> dict:
        return asdict(self)


def _natural_key(value: str) -> Tuple:
    # "8" < "11" < "17.0.14-librca"; digits compare as numbers, text as text
    return tuple((0, int(part), "") if part.isdecimal() else (1, 0, part) for part in _CHUNK.split(value) if part)


def format_number(value: float) -> str:
    """Render a metric the way jq prints JSON numbers: 187654321, 4.521."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_row(cells) -> str:
    return " ".join(f"{cell:<{width}}" for cell, width in zip(cells, COLUMN_WIDTHS))


class ResultsMatrix:
    """
    Samples keyed by RunDescriptor, owned by the demo driver.

    record() is an upsert: a later sample for the same descriptor replaces the earlier one
    and the replacement is written to the event log. Iteration is sorted by descriptor so
    the rendered table does not depend on insertion order.
    """

    def __init__(self):
        self._samples: Dict[RunDescriptor, MetricSample] = {}

    def record(self, descriptor: RunDescriptor, sample: MetricSample) -> Optional[MetricSample]:
        """Store sample for descriptor. Returns the sample it replaced, if any."""
        previous = self._samples.get(descriptor)
        self._samples[descriptor] = sample
        if previous is not None and previous != sample:
            demo_logger.log_sample_overwritten(descriptor, previous, sample)
        demo_logger.log_sample_recorded(descriptor, sample)
        gauges.record_sample(descriptor, sample)
        return previous

    def get(self, descriptor: RunDescriptor) -> Optional[MetricSample]:
        return self._samples.get(descriptor)

    def __contains__(self, descriptor) -> bool:
        return descriptor in self._samples

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Tuple[RunDescriptor, MetricSample]]:
        for descriptor in sorted(self._samples, key=RunDescriptor.sort_key):
            yield descriptor, self._samples[descriptor]

    def rows(self):
        for descriptor, sample in self:
            yield (
                descriptor.runtime_version,
                descriptor.framework_version,
                descriptor.variant,
                format_number(sample.started_time_seconds),
                format_number(sample.memory_used_bytes),
            )

    def render(self) -> str:
        """Header, underline, one line per recorded run, then a blank line."""
        lines = [format_row(HEADERS), format_row(UNDERLINES)]
        lines.extend(format_row(row) for row in self.rows())
        lines.append("")
        return "\n".join(lines) + "\n"
