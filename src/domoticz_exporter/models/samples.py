"""Data models shared by the ingestion path, the store and the collector."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

UINT32_MAX = 2**32 - 1


class Report(BaseModel):
    """A single metric update pushed by Domoticz."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(ge=0, le=UINT32_MAX)
    type: str
    subtype: str = Field(alias="sType")
    value: float
    name: str = ""
    time: str = ""
    unit: str = ""


class ValueKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"


def _frozen_labels(labels: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(labels or {}))


@dataclass(frozen=True)
class Sample:
    """Latest exported state of one sensor."""

    id: int
    name: str
    help: str
    value: float
    kind: ValueKind
    expiry: float
    labels: Mapping[str, str] = field(default_factory=_frozen_labels)

    def __post_init__(self) -> None:
        if not isinstance(self.labels, MappingProxyType):
            object.__setattr__(self, "labels", _frozen_labels(self.labels))

    def is_expired(self, now: float) -> bool:
        return self.expiry <= now
