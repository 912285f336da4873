"""Aggregation logic for derived chart points."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Sequence

from models.metrics import MetricDescriptor
from models.records import DerivedPoint, Statistics


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def __init__(self, metrics: Sequence[MetricDescriptor]) -> None:
        self.metrics = tuple(metrics)

    def aggregate(self, points: Iterable[DerivedPoint]) -> Dict[str, Statistics]:
        columns: Dict[str, List[float]] = {descriptor.key: [] for descriptor in self.metrics}

        for point in points:
            for descriptor in self.metrics:
                columns[descriptor.key].append(
                    point.metrics.get(descriptor.key, descriptor.default)
                )

        summary: Dict[str, Statistics] = {}
        for descriptor in self.metrics:
            values = columns[descriptor.key]
            if not values:
                summary[descriptor.key] = Statistics()
                continue
            # fsum keeps the mean independent of input order.
            mean = math.fsum(values) / len(values)
            summary[descriptor.key] = Statistics(
                mean=_round_half_up(mean, descriptor.precision),
                min=min(values),
                max=max(values),
            )
        return summary


def _round_half_up(value: float, precision: int) -> float:
    # Round the shortest decimal repr, not the binary float (1.005 -> 1.01).
    quantum = Decimal(1).scaleb(-precision)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
