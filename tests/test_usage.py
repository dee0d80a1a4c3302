from __future__ import annotations

import pytest

from space_quota.models import RegionInfo, RegionReport, TableName, UsageSnapshot
from space_quota.usage import (
    build_snapshot,
    namespace_usage,
    region_count,
    regions_of,
    regions_of_namespace,
    table_usage,
    total_usage,
    usage_by_table,
)


def _region(table: TableName, index: int, region_id: int = 0) -> RegionInfo:
    return RegionInfo(
        table=table,
        start_key=index.to_bytes(4, "big"),
        end_key=(index + 1).to_bytes(4, "big"),
        region_id=region_id,
    )


def _snapshot(layout: dict[TableName, int], size: int = 1) -> UsageSnapshot:
    usage: dict[RegionInfo, int] = {}
    for table, count in layout.items():
        for i in range(count):
            usage[_region(table, i)] = size
    return UsageSnapshot(usage)


def test_region_counts_per_table() -> None:
    t1, t2, t3 = (TableName.value_of(name) for name in ("t1", "t2", "t3"))
    snapshot = _snapshot({t1: 10, t2: 15, t3: 8})

    assert region_count(snapshot, t1) == 10
    assert region_count(snapshot, t2) == 15
    assert region_count(snapshot, t3) == 8
    assert total_usage(snapshot, t1) == 10
    assert total_usage(snapshot, t2) == 15
    assert total_usage(snapshot, t3) == 8


def test_total_usage_matches_region_sum() -> None:
    t1 = TableName.value_of("t1")
    t2 = TableName.value_of("t2")
    snapshot = UsageSnapshot({_region(t1, i): i * 100 for i in range(5)} | {_region(t2, 0): 7})

    assert total_usage(snapshot, t1) == sum(size for _, size in regions_of(snapshot, t1))
    assert total_usage(snapshot, t1) == 1000
    assert table_usage(snapshot, t1).regions == 5
    assert table_usage(snapshot, t1).size == 1000


def test_missing_table_has_zero_usage() -> None:
    snapshot = _snapshot({TableName.value_of("t1"): 3})
    absent = TableName.value_of("absent")

    assert total_usage(snapshot, absent) == 0
    assert region_count(snapshot, absent) == 0
    assert total_usage(UsageSnapshot(), absent) == 0


def test_regions_of_is_restartable() -> None:
    t1 = TableName.value_of("t1")
    snapshot = _snapshot({t1: 4, TableName.value_of("t2"): 2})

    first = set(regions_of(snapshot, t1))
    second = set(regions_of(snapshot, t1))
    assert first == second
    assert len(first) == 4


def test_overlapping_key_ranges_are_both_counted() -> None:
    t1 = TableName.value_of("t1")
    snapshot = UsageSnapshot({_region(t1, 0, region_id=1): 5, _region(t1, 0, region_id=2): 6})

    assert region_count(snapshot, t1) == 2
    assert total_usage(snapshot, t1) == 11


def test_build_snapshot_keeps_latest_report() -> None:
    t1 = TableName.value_of("t1")
    region = _region(t1, 0)
    snapshot = build_snapshot(
        [RegionReport(region=region, size=10), RegionReport(region=region, size=3)]
    )

    assert len(snapshot) == 1
    assert snapshot[region] == 3


def test_snapshot_rejects_negative_usage() -> None:
    with pytest.raises(ValueError):
        UsageSnapshot({_region(TableName.value_of("t1"), 0): -1})


def test_namespace_usage_spans_tables() -> None:
    a = TableName.value_of("ns1:a")
    b = TableName.value_of("ns1:b")
    other = TableName.value_of("ns2:a")
    snapshot = _snapshot({a: 2, b: 3, other: 4}, size=10)

    assert namespace_usage(snapshot, "ns1") == 50
    assert sum(1 for _ in regions_of_namespace(snapshot, "ns2")) == 4
    assert namespace_usage(snapshot, "missing") == 0


def test_usage_by_table_groups_once() -> None:
    t1 = TableName.value_of("t1")
    t2 = TableName.value_of("t2")
    grouped = usage_by_table(_snapshot({t1: 2, t2: 3}, size=4))

    assert grouped[t1].regions == 2
    assert grouped[t1].size == 8
    assert grouped[t2].size == 12


def test_table_name_parsing() -> None:
    assert TableName.value_of("t1") == TableName(qualifier="t1")
    assert TableName.value_of("ns:t1").namespace == "ns"
    assert str(TableName.value_of("ns:t1")) == "ns:t1"
    assert str(TableName.value_of("t1")) == "t1"


def test_region_report_json_uses_hex_keys() -> None:
    report = RegionReport(region=_region(TableName.value_of("ns:t1"), 1), size=9)
    encoded = report.model_dump_json()

    assert '"start_key":"00000001"' in encoded
    assert RegionReport.model_validate_json(encoded) == report


@pytest.mark.parametrize("kwargs", [{"qualifier": "a:b"}, {"namespace": "x:y", "qualifier": "t"}])
def test_table_name_parts_reject_separator(kwargs: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        TableName(**kwargs)


def test_default_namespace_prefix_is_equivalent() -> None:
    assert TableName.value_of("default:t1") == TableName.value_of("t1")
