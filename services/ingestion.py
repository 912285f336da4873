"""Sanitization of raw source payloads into ``Reading`` instances."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Sequence

from models.metrics import MetricDescriptor
from models.records import Reading

logger = logging.getLogger(__name__)

_SENSOR_KEYS = ("sensorName", "sensor_name", "sensor", "nome")
_TIMESTAMP_KEYS = ("timestamp", "dataHora", "data_hora")


def _first_present(item: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def _sensor_name(item: Mapping[str, Any], position: int) -> str:
    raw = _first_present(item, _SENSOR_KEYS)
    if raw is None:
        return f"Sensor {position}"
    candidate = str(raw).strip()
    return candidate or f"Sensor {position}"


def _timestamp(item: Mapping[str, Any]) -> str:
    raw = _first_present(item, _TIMESTAMP_KEYS)
    if not isinstance(raw, str):
        return ""
    return raw.strip()


def sanitize_reading(
    item: Mapping[str, Any],
    metrics: Sequence[MetricDescriptor],
    position: int = 1,
) -> Reading:
    """Build a reading from one payload item, substituting defaults per field."""
    sensor = _sensor_name(item, position)
    values: dict[str, float] = {}
    for descriptor in metrics:
        raw = _first_present(item, (descriptor.key, *descriptor.aliases))
        value = descriptor.sanitize(raw)
        if raw is None or value != raw:
            logger.debug(
                "Sanitized metric value",
                extra={"sensor": sensor, "metric": descriptor.key, "reason": repr(raw)},
            )
        values[descriptor.key] = value

    timestamp = _timestamp(item)
    if not timestamp:
        logger.debug(
            "Reading has no timestamp",
            extra={"sensor": sensor, "field": "timestamp"},
        )
    return Reading(sensor_name=sensor, timestamp=timestamp, metrics=values)


def sanitize_payload(
    payload: Iterable[Any],
    metrics: Sequence[MetricDescriptor],
) -> List[Reading]:
    readings: list[Reading] = []
    for position, item in enumerate(payload, start=1):
        if not isinstance(item, Mapping):
            logger.warning(
                "Skipping non-object reading",
                extra={"field": f"item[{position}]", "reason": type(item).__name__},
            )
            continue
        readings.append(sanitize_reading(item, metrics, position=position))
    return readings
