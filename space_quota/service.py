"""Service orchestrating report ingestion, evaluation passes and enforcement."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from .evaluator import evaluate_all, evaluate_namespaces
from .models import (
    EvaluationReport,
    QuotaObserverConfig,
    RegionReport,
    SpaceQuota,
    TableName,
    TableUsage,
    ViolationDecision,
    ViolationPolicy,
)
from .storage import UsageReportStore, create_store
from .usage import usage_by_table

logger = logging.getLogger(__name__)


class QuotaRecord(BaseModel):
    """One line of a quota JSONL file: a table or a namespace quota."""

    table: str | None = Field(None, min_length=1)
    namespace: str | None = Field(None, min_length=1)
    quota: SpaceQuota


class EnforcementDispatcher(Protocol):
    """Receives violation state transitions."""

    def enable_violation(self, table: TableName, policy: ViolationPolicy) -> None: ...

    def disable_violation(self, table: TableName) -> None: ...


class LoggingEnforcementDispatcher:
    """Dispatcher that only records transitions in the log."""

    def enable_violation(self, table: TableName, policy: ViolationPolicy) -> None:
        logger.info("Enabling %s on %s", policy.name, table)

    def disable_violation(self, table: TableName) -> None:
        logger.info("Disabling space quota enforcement on %s", table)


class QuotaObserverService:
    """Runs evaluation passes and tracks each table's violation state."""

    def __init__(
        self,
        config: QuotaObserverConfig,
        store: UsageReportStore | None = None,
        dispatcher: EnforcementDispatcher | None = None,
    ) -> None:
        self.config = config
        self.store = store or create_store(config)
        self.store.load()
        self.dispatcher = dispatcher or LoggingEnforcementDispatcher()
        self._table_quotas: dict[TableName, SpaceQuota] = {}
        self._namespace_quotas: dict[str, SpaceQuota] = {}
        self._region_counts: dict[TableName, int] = {}
        self._states: dict[TableName, ViolationDecision] = {}
        # Quota records that failed validation, keyed by subject name.
        self._rejected_tables: dict[str, str] = {}
        self._rejected_namespaces: dict[str, str] = {}

    def ingest_reports(self, reports: Iterable[RegionReport]) -> None:
        self.store.add_reports(reports)

    def ingest_jsonl(self, path: Path) -> None:
        """Read a JSONL file of region reports and ingest."""
        with path.open("r", encoding="utf-8") as fh:
            reports = [RegionReport.model_validate_json(line) for line in fh if line.strip()]
        self.ingest_reports(reports)

    def set_table_quota(self, table: TableName, quota: SpaceQuota) -> None:
        self._rejected_tables.pop(str(table), None)
        self._table_quotas[table] = quota

    def remove_table_quota(self, table: TableName) -> None:
        """Forget a table quota; an active violation is lifted on the next pass."""
        self._rejected_tables.pop(str(table), None)
        self._table_quotas.pop(table, None)

    def set_namespace_quota(self, namespace: str, quota: SpaceQuota) -> None:
        self._rejected_namespaces.pop(namespace, None)
        self._namespace_quotas[namespace] = quota

    def set_region_count(self, table: TableName, count: int) -> None:
        if count < 0:
            raise ValueError(f"region count must be non-negative, got {count}")
        self._region_counts[table] = count

    def load_quotas_jsonl(self, path: Path) -> None:
        """Load table and namespace quotas from a JSONL file."""
        with path.open("r", encoding="utf-8") as fh:
            lines = [line for line in fh if line.strip()]
        for line in lines:
            try:
                record = QuotaRecord.model_validate_json(line)
                table = TableName.value_of(record.table) if record.table is not None else None
            except ValidationError as exc:
                self._reject(line, exc)
                continue
            if table is not None:
                self.set_table_quota(table, record.quota)
            elif record.namespace is not None:
                self.set_namespace_quota(record.namespace, record.quota)
            else:
                raise ValueError("quota record names neither a table nor a namespace")

    def _reject(self, line: str, exc: ValidationError) -> None:
        """Mark the subject of a malformed quota line as unevaluable."""
        data = json.loads(line)
        if not isinstance(data, dict):
            raise exc
        message = f"malformed quota record: {exc.error_count()} validation error(s)"
        if isinstance(data.get("table"), str):
            subject = data["table"]
            try:
                subject = str(TableName.value_of(subject))
            except ValidationError:
                pass
            logger.warning("Rejecting quota for table %s: %s", subject, exc)
            self._table_quotas = {
                table: quota
                for table, quota in self._table_quotas.items()
                if str(table) != subject
            }
            self._rejected_tables[subject] = message
        elif isinstance(data.get("namespace"), str):
            subject = data["namespace"]
            logger.warning("Rejecting quota for namespace %s: %s", subject, exc)
            self._namespace_quotas.pop(subject, None)
            self._rejected_namespaces[subject] = message
        else:
            raise exc

    def run_once(self) -> EvaluationReport:
        """Evaluate all table quotas against the current reports."""
        snapshot = self.store.snapshot()
        report = evaluate_all(
            snapshot,
            self._table_quotas,
            region_counts=self._region_counts,
            report_percent=self.config.report_percent,
        )
        for subject, message in self._rejected_tables.items():
            report.failures.setdefault(subject, message)
        self._apply(report)
        logger.debug(
            "Evaluated %d tables: %d decided, %d failed, %d skipped",
            len(self._table_quotas),
            len(report.decisions),
            len(report.failures),
            len(report.skipped),
        )
        return report

    def run_namespaces(self) -> EvaluationReport:
        """Evaluate namespace quotas; these are reported, not enforced."""
        report = evaluate_namespaces(self.store.snapshot(), self._namespace_quotas)
        for subject, message in self._rejected_namespaces.items():
            report.failures.setdefault(subject, message)
        return report

    def _apply(self, report: EvaluationReport) -> None:
        for table in self._table_quotas:
            decision = report.decisions.get(str(table))
            if decision is None:
                # Failed or skipped tables keep their previous state.
                continue
            previous = self._states.get(table, ViolationDecision.no_violation())
            self._states[table] = decision
            if decision == previous:
                continue
            if decision.in_violation and decision.policy is not None:
                self.dispatcher.enable_violation(table, decision.policy)
            else:
                self.dispatcher.disable_violation(table)
        # Tables whose quota was removed fall back out of violation.
        for table in list(self._states):
            if table in self._table_quotas or str(table) in self._rejected_tables:
                continue
            if self._states.pop(table).in_violation:
                self.dispatcher.disable_violation(table)

    def table_states(self) -> dict[str, ViolationDecision]:
        return {str(table): decision for table, decision in self._states.items()}

    def usage_summary(self) -> list[TableUsage]:
        """Per-table usage of the current reports, for diagnostics."""
        usage = usage_by_table(self.store.snapshot())
        return sorted(usage.values(), key=lambda u: str(u.table))
