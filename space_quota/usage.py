"""Aggregation helpers deriving table and namespace usage from a snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .models import RegionInfo, RegionReport, TableName, TableUsage, UsageSnapshot

RegionUsage = tuple[RegionInfo, int]


def build_snapshot(reports: Iterable[RegionReport]) -> UsageSnapshot:
    """Collapse reports into a snapshot; later reports for a region win."""
    latest: dict[RegionInfo, int] = {}
    for report in reports:
        latest[report.region] = report.size
    return UsageSnapshot(latest)


def regions_of(snapshot: UsageSnapshot, table: TableName) -> Iterator[RegionUsage]:
    """Yield every region of ``table`` present in ``snapshot``, in no particular order."""
    return ((region, size) for region, size in snapshot.items() if region.table == table)


def total_usage(snapshot: UsageSnapshot, table: TableName) -> int:
    return sum(size for _, size in regions_of(snapshot, table))


def region_count(snapshot: UsageSnapshot, table: TableName) -> int:
    return sum(1 for _ in regions_of(snapshot, table))


def table_usage(snapshot: UsageSnapshot, table: TableName) -> TableUsage:
    """Region count and total size of ``table`` in a single pass."""
    regions = 0
    size = 0
    for _, region_size in regions_of(snapshot, table):
        regions += 1
        size += region_size
    return TableUsage(table=table, regions=regions, size=size)


def regions_of_namespace(snapshot: UsageSnapshot, namespace: str) -> Iterator[RegionUsage]:
    """Yield every region whose table lives in ``namespace``."""
    return (
        (region, size)
        for region, size in snapshot.items()
        if region.table.namespace == namespace
    )


def namespace_usage(snapshot: UsageSnapshot, namespace: str) -> int:
    return sum(size for _, size in regions_of_namespace(snapshot, namespace))


def usage_by_table(snapshot: UsageSnapshot) -> dict[TableName, TableUsage]:
    """Group the whole snapshot by table, visiting each region once."""
    counts: dict[TableName, list[int]] = {}
    for region, size in snapshot.items():
        bucket = counts.setdefault(region.table, [0, 0])
        bucket[0] += 1
        bucket[1] += size
    return {
        table: TableUsage(table=table, regions=bucket[0], size=bucket[1])
        for table, bucket in counts.items()
    }
