"""Public API facade for the space quota observer."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .models import (
    EvaluationReport,
    QuotaObserverConfig,
    RegionReport,
    SpaceQuota,
    TableName,
    TableUsage,
    ViolationDecision,
)
from .service import EnforcementDispatcher, QuotaObserverService


class QuotaObserverAPI:
    """High-level façade consumed by schedulers or operator tooling."""

    def __init__(
        self,
        config: QuotaObserverConfig,
        dispatcher: EnforcementDispatcher | None = None,
    ) -> None:
        self._service = QuotaObserverService(config, dispatcher=dispatcher)

    def ingest_reports(self, reports: Iterable[RegionReport]) -> None:
        """Ingest in-memory region reports."""
        self._service.ingest_reports(list(reports))

    def ingest_file(self, path: str | Path) -> None:
        """Load a JSONL report file and ingest."""
        self._service.ingest_jsonl(Path(path))

    def load_quotas(self, path: str | Path) -> None:
        self._service.load_quotas_jsonl(Path(path))

    def set_quota(self, table: str | TableName, quota: SpaceQuota) -> None:
        self._service.set_table_quota(_table(table), quota)

    def remove_quota(self, table: str | TableName) -> None:
        self._service.remove_table_quota(_table(table))

    def set_namespace_quota(self, namespace: str, quota: SpaceQuota) -> None:
        self._service.set_namespace_quota(namespace, quota)

    def set_region_count(self, table: str | TableName, count: int) -> None:
        self._service.set_region_count(_table(table), count)

    def evaluate(self) -> EvaluationReport:
        """Run one evaluation pass over table quotas."""
        return self._service.run_once()

    def evaluate_namespaces(self) -> EvaluationReport:
        return self._service.run_namespaces()

    def states(self) -> dict[str, ViolationDecision]:
        """Violation state of every table seen by a pass."""
        return self._service.table_states()

    def usage(self) -> list[TableUsage]:
        return self._service.usage_summary()


def _table(table: str | TableName) -> TableName:
    return table if isinstance(table, TableName) else TableName.value_of(table)


def build_api(config: QuotaObserverConfig | None = None) -> QuotaObserverAPI:
    """Convenience constructor with defaults."""
    return QuotaObserverAPI(config or QuotaObserverConfig())
