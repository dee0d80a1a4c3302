"""Storage backends for region usage reports."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .models import QuotaObserverConfig, RegionInfo, RegionReport, UsageSnapshot


class UsageReportStore(Protocol):
    """Abstract store contract."""

    def load(self) -> None: ...

    def add_reports(self, reports: Iterable[RegionReport]) -> None: ...

    def snapshot(self) -> UsageSnapshot: ...

    def clear(self) -> None: ...


@dataclass
class InMemoryUsageReportStore(UsageReportStore):
    """Latest report per region, kept in memory."""

    _usage: dict[RegionInfo, int] = field(default_factory=dict)

    def load(self) -> None:
        return None

    def add_reports(self, reports: Iterable[RegionReport]) -> None:
        for report in reports:
            self._usage[report.region] = report.size

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(self._usage)

    def clear(self) -> None:
        self._usage.clear()


@dataclass
class JsonlUsageReportStore(UsageReportStore):
    """Persist the latest report per region to a JSONL file."""

    path: Path
    _reports: InMemoryUsageReportStore = field(default_factory=InMemoryUsageReportStore)

    def load(self) -> None:
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as fh:
            lines = fh.readlines()
        parsed: list[RegionReport] = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            parsed.append(RegionReport.model_validate_json(line))
        self._reports.clear()
        self._reports.add_reports(parsed)

    def add_reports(self, reports: Iterable[RegionReport]) -> None:
        self._reports.add_reports(reports)
        self._flush()

    def snapshot(self) -> UsageSnapshot:
        return self._reports.snapshot()

    def clear(self) -> None:
        self._reports.clear()
        if self.path.exists():
            self.path.unlink()

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            for region, size in self._reports.snapshot().items():
                fh.write(RegionReport(region=region, size=size).model_dump_json())
                fh.write("\n")


def create_store(config: QuotaObserverConfig) -> UsageReportStore:
    """Factory helper selecting the appropriate store."""
    if config.store_path:
        return JsonlUsageReportStore(path=Path(config.store_path))
    return InMemoryUsageReportStore()
