"""Exported metric identity for a Domoticz report."""
from __future__ import annotations

import re
from typing import Tuple

from ..models.samples import Report, ValueKind

METRIC_PREFIX = "domoticz"
ACCUMULATING_TYPES = frozenset({"counter", "derive"})

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def metric_name(report: Report) -> str:
    name = f"{METRIC_PREFIX}_{report.id}_{report.type}_{report.subtype}"
    return _INVALID_NAME_CHARS.sub("_", name)


def metric_help(report: Report) -> str:
    return (
        f"Domoticz exporter: Type: '{report.type}' Dstype: '{report.subtype}' "
        f"Dsname: '{report.name}' Unit: '{report.unit}'"
    )


def value_kind(report_type: str) -> ValueKind:
    if report_type in ACCUMULATING_TYPES:
        return ValueKind.COUNTER
    return ValueKind.GAUGE


def describe(report: Report) -> Tuple[str, str, ValueKind]:
    return metric_name(report), metric_help(report), value_kind(report.type)
