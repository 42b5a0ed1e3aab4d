import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Metric:
    name: str
    value: float
    unit: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Metric name must not be empty")
        if not isinstance(self.value, (int, float)) or isinstance(self.value, bool):
            raise ValueError(f"Metric {self.name!r} value must be a number, got {self.value!r}")
        if math.isnan(self.value):
            raise ValueError(f"Metric {self.name!r} value is NaN")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metric":
        return cls(name=str(data["name"]), value=data["value"], unit=str(data.get("unit", "")))


@dataclass(frozen=True)
class Context:
    """Where a benchmark run happened; required by the multi-file format."""

    machine: str
    target: str
    toolchain: str
    extra: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("machine", "target", "toolchain"):
            if not str(getattr(self, name)).strip():
                raise ValueError(f"Context field '{name}' must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "machine": self.machine,
            "target": self.target,
            "toolchain": self.toolchain,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Context":
        return cls(
            machine=str(data.get("machine", "")),
            target=str(data.get("target", "")),
            toolchain=str(data.get("toolchain", "")),
            extra={str(k): str(v) for k, v in (data.get("extra") or {}).items()},
        )


@dataclass(frozen=True)
class BenchmarkRun:
    """Immutable snapshot: metrics per group, plus optional run context."""

    groups: Mapping[str, tuple[Metric, ...]]
    context: Context | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    @classmethod
    def build(
        cls,
        groups: Mapping[str, list[Metric] | tuple[Metric, ...]],
        context: Context | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> "BenchmarkRun":
        frozen = {name: tuple(metrics) for name, metrics in sorted(groups.items())}
        return cls(MappingProxyType(frozen), context, start_time, end_time)

    def __len__(self) -> int:
        return len(self.groups)

    def __contains__(self, group: object) -> bool:
        return group in self.groups

    @property
    def group_names(self) -> tuple[str, ...]:
        return tuple(self.groups)

    def metrics(self, group: str) -> dict[str, Metric]:
        return {metric.name: metric for metric in self.groups[group]}
