"""Metric descriptor table.

Every per-metric decision (domain, precision, units, status banding and
colors) lives here so that geometry, statistics and tooltip code can stay
generic: look up the descriptor, then run the shared computation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple, Union

STATUS_COLORS: Dict[str, str] = {
    "critical": "#e53935",
    "low": "#fb8c00",
    "moderate": "#fdd835",
    "good": "#43a047",
    "excellent": "#1e88e5",
    "normal": "#43a047",
    "attention": "#fdd835",
    "out of range": "#e53935",
}
UNKNOWN_COLOR = "#9e9e9e"


def color_for(status: str) -> str:
    return STATUS_COLORS.get(status, UNKNOWN_COLOR)


@dataclass(frozen=True)
class AscendingBands:
    """Higher is better: thresholds are checked lowest first."""

    thresholds: Tuple[Tuple[float, str], ...]
    top: str

    def classify(self, value: float) -> str:
        for limit, status in self.thresholds:
            if value < limit:
                return status
        return self.top


@dataclass(frozen=True)
class DescendingBands:
    """Higher is worse: thresholds are checked highest first."""

    thresholds: Tuple[Tuple[float, str], ...]
    bottom: str

    def classify(self, value: float) -> str:
        for limit, status in self.thresholds:
            if value > limit:
                return status
        return self.bottom


@dataclass(frozen=True)
class RangeBands:
    """Symmetric band around a neutral center."""

    hard_min: float
    soft_min: float
    soft_max: float
    hard_max: float
    outside: str = "out of range"
    edge: str = "attention"
    inside: str = "normal"

    def classify(self, value: float) -> str:
        if value < self.hard_min or value > self.hard_max:
            return self.outside
        if value < self.soft_min or value > self.soft_max:
            return self.edge
        return self.inside


def headroom_max(values: Iterable[float], floor: float = 100.0, step: float = 50.0) -> float:
    """Scale maximum that always covers the observed data, in ``step`` increments."""
    observed = max(values, default=0.0)
    return max(floor, math.ceil(observed / step) * step)


@dataclass(frozen=True)
class MetricDescriptor:
    key: str
    label: str
    unit: str
    precision: int
    ceiling: float
    bands: Union[AscendingBands, DescendingBands, RangeBands]
    default: float = 0.0
    domain_max: Optional[float] = None
    domain_max_fn: Optional[Callable[[Iterable[float]], float]] = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def sanitize(self, value: object) -> float:
        """Coerce a raw payload value into ``[0, ceiling]``."""
        if isinstance(value, bool):
            number = self.default
        elif isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip().replace(",", "."))
            except ValueError:
                number = self.default
        else:
            number = self.default
        if math.isnan(number) or math.isinf(number):
            number = self.default
        return min(max(number, 0.0), self.ceiling)

    def scale_max(self, values: Iterable[float] = ()) -> float:
        if self.domain_max_fn is not None:
            return self.domain_max_fn(values)
        if self.domain_max is None:
            return self.ceiling
        return self.domain_max

    def classify(self, value: float) -> str:
        return self.bands.classify(value)

    def color(self, value: float) -> str:
        return color_for(self.classify(value))

    def format(self, value: float) -> str:
        text = f"{value:.{self.precision}f}"
        if not self.unit:
            return text
        if self.unit == "%":
            return f"{text}%"
        return f"{text} {self.unit}"


LEVEL = MetricDescriptor(
    key="level",
    label="Water level",
    unit="%",
    precision=1,
    ceiling=100.0,
    domain_max=100.0,
    bands=AscendingBands(
        thresholds=((20, "critical"), (40, "low"), (60, "moderate"), (80, "good")),
        top="excellent",
    ),
    aliases=("nivel", "nível", "waterLevel", "water_level"),
)

PH = MetricDescriptor(
    key="ph",
    label="pH",
    unit="",
    precision=2,
    ceiling=14.0,
    default=7.0,
    domain_max=14.0,
    bands=RangeBands(hard_min=6.0, soft_min=6.5, soft_max=8.0, hard_max=8.5),
    aliases=("pH", "PH"),
)

TURBIDITY = MetricDescriptor(
    key="turbidity",
    label="Turbidity",
    unit="NTU",
    precision=1,
    ceiling=1000.0,
    domain_max_fn=headroom_max,
    bands=DescendingBands(
        thresholds=((100, "critical"), (50, "low"), (25, "moderate"), (5, "good")),
        bottom="excellent",
    ),
    aliases=("turbidez",),
)

TEMPERATURE = MetricDescriptor(
    key="temperature",
    label="Temperature",
    unit="°C",
    precision=1,
    ceiling=50.0,
    domain_max=50.0,
    bands=RangeBands(hard_min=10.0, soft_min=18.0, soft_max=28.0, hard_max=35.0),
    aliases=("temperatura", "temp"),
)

HUMIDITY = MetricDescriptor(
    key="humidity",
    label="Humidity",
    unit="%",
    precision=1,
    ceiling=100.0,
    domain_max=100.0,
    bands=RangeBands(hard_min=20.0, soft_min=30.0, soft_max=70.0, hard_max=80.0),
    aliases=("umidade", "humidade"),
)

VARIANTS: Dict[str, Tuple[MetricDescriptor, ...]] = {
    "water": (LEVEL, PH, TURBIDITY),
    "climate": (TEMPERATURE, HUMIDITY),
}


def metrics_for(variant: str) -> Tuple[MetricDescriptor, ...]:
    try:
        return VARIANTS[variant]
    except KeyError as exc:
        raise KeyError(f"Unknown deployment variant {variant!r}.") from exc


def lookup(metrics: Sequence[MetricDescriptor], key: str) -> MetricDescriptor:
    for descriptor in metrics:
        if descriptor.key == key:
            return descriptor
    raise KeyError(f"Unknown metric {key!r}.")
