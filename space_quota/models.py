"""Typed data models used across the space quota observer."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_serializer, field_validator

DEFAULT_NAMESPACE = "default"


class TableName(BaseModel):
    """Namespace-qualified table identity."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(DEFAULT_NAMESPACE, min_length=1)
    qualifier: str = Field(..., min_length=1)

    @field_validator("namespace", "qualifier")
    @classmethod
    def reject_separator(cls, value: str) -> str:
        if ":" in value:
            raise ValueError(f"table name part {value!r} may not contain ':'")
        return value

    @classmethod
    def value_of(cls, name: str) -> TableName:
        """Parse ``ns:qualifier``; a bare name lives in the default namespace."""
        namespace, sep, qualifier = name.partition(":")
        if not sep:
            return cls(qualifier=name)
        return cls(namespace=namespace, qualifier=qualifier)

    def __str__(self) -> str:
        if self.namespace == DEFAULT_NAMESPACE:
            return self.qualifier
        return f"{self.namespace}:{self.qualifier}"


def _coerce_key(value: object) -> object:
    if isinstance(value, str):
        return bytes.fromhex(value)
    return value


class RegionInfo(BaseModel):
    """Identity of a region: its table, key range and region id."""

    model_config = ConfigDict(frozen=True)

    table: TableName
    start_key: bytes = b""
    end_key: bytes = b""
    region_id: int = Field(0, ge=0)

    @field_validator("table", mode="before")
    @classmethod
    def parse_table(cls, value: object) -> object:
        if isinstance(value, str):
            return TableName.value_of(value)
        return value

    @field_validator("start_key", "end_key", mode="before")
    @classmethod
    def parse_key(cls, value: object) -> object:
        return _coerce_key(value)

    @field_serializer("start_key", "end_key")
    def dump_key(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("table")
    def dump_table(self, value: TableName) -> str:
        return str(value)


class RegionReport(BaseModel):
    """Latest known on-disk size of a single region."""

    region: RegionInfo
    size: int = Field(..., ge=0)


class UsageSnapshot(Mapping[RegionInfo, int]):
    """Immutable point-in-time view of region usage across the cluster."""

    __slots__ = ("_usage",)

    def __init__(self, usage: Mapping[RegionInfo, int] | None = None) -> None:
        copied = dict(usage or {})
        for region, size in copied.items():
            if size < 0:
                raise ValueError(f"negative usage {size} reported for {region}")
        self._usage = MappingProxyType(copied)

    def __getitem__(self, region: RegionInfo) -> int:
        return self._usage[region]

    def __iter__(self) -> Iterator[RegionInfo]:
        return iter(self._usage)

    def __len__(self) -> int:
        return len(self._usage)

    def __repr__(self) -> str:
        return f"UsageSnapshot(regions={len(self._usage)})"


class TableUsage(BaseModel):
    """Usage of one table derived from a snapshot."""

    table: TableName
    regions: int = Field(..., ge=0)
    size: int = Field(..., ge=0)

    @field_serializer("table")
    def dump_table(self, value: TableName) -> str:
        return str(value)


class ViolationPolicy(Enum):
    """Enforcement action requested once a quota is exceeded.

    Values are the wire codes carried by quota records.
    """

    DISABLE = 1
    NO_WRITES_COMPACTIONS = 2
    NO_WRITES = 3
    NO_INSERTS = 4


class SpaceQuota(BaseModel):
    """Raw quota record as delivered by the quota source."""

    soft_limit: int = Field(..., ge=1)
    # Kept raw; only decode_policy decides whether the code is usable.
    violation_policy: JsonValue = None


class SpaceQuotaConfig(BaseModel):
    """Decoded quota for one table or namespace."""

    model_config = ConfigDict(frozen=True)

    soft_limit: int = Field(..., ge=1)
    policy: ViolationPolicy


class ViolationDecision(BaseModel):
    """Outcome of comparing usage against a quota."""

    model_config = ConfigDict(frozen=True)

    in_violation: bool
    policy: ViolationPolicy | None = None

    @classmethod
    def no_violation(cls) -> ViolationDecision:
        return cls(in_violation=False)

    @classmethod
    def violation(cls, policy: ViolationPolicy) -> ViolationDecision:
        return cls(in_violation=True, policy=policy)

    def __str__(self) -> str:
        if self.in_violation and self.policy is not None:
            return f"InViolation({self.policy.name})"
        return "NoViolation"


class EvaluationReport(BaseModel):
    """Decisions, failures and skipped subjects of one evaluation pass."""

    decisions: dict[str, ViolationDecision] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class QuotaObserverConfig(BaseModel):
    """Runtime configuration switches."""

    report_percent: float = Field(0.95, gt=0.0, le=1.0)
    store_path: str | None = None
