"""Policy decoding and violation decisions for space quotas."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .errors import InvalidQuotaConfiguration
from .models import (
    EvaluationReport,
    SpaceQuota,
    SpaceQuotaConfig,
    TableName,
    UsageSnapshot,
    ViolationDecision,
    ViolationPolicy,
)
from .usage import namespace_usage, usage_by_table

logger = logging.getLogger(__name__)


def decode_policy(quota: SpaceQuota) -> ViolationPolicy:
    """Return the violation policy requested by ``quota``.

    Raises InvalidQuotaConfiguration when the record has no policy or an
    unknown policy code. A missing policy is never treated as "no policy".
    """
    code = quota.violation_policy
    if code is None:
        raise InvalidQuotaConfiguration("quota has no violation policy set")
    # bool is an int subclass; True must not decode as DISABLE.
    if isinstance(code, bool) or not isinstance(code, int):
        raise InvalidQuotaConfiguration(
            f"violation policy code {code!r} is not an integer", code=code
        )
    try:
        return ViolationPolicy(code)
    except ValueError as exc:
        raise InvalidQuotaConfiguration(
            f"unknown violation policy code {code}", code=code
        ) from exc


def encode_policy(policy: ViolationPolicy) -> int:
    """Wire code for ``policy``."""
    return policy.value


def decode_quota(quota: SpaceQuota) -> SpaceQuotaConfig:
    return SpaceQuotaConfig(soft_limit=quota.soft_limit, policy=decode_policy(quota))


def evaluate(usage_total: int, quota: SpaceQuota | SpaceQuotaConfig) -> ViolationDecision:
    """Compare raw usage against the soft limit.

    Usage exactly at the limit is not a violation. Raw quotas are decoded
    first, so a malformed quota raises instead of producing a decision.
    """
    config = quota if isinstance(quota, SpaceQuotaConfig) else decode_quota(quota)
    if usage_total > config.soft_limit:
        return ViolationDecision.violation(config.policy)
    return ViolationDecision.no_violation()


def _has_enough_reports(reported: int, expected: int | None, report_percent: float) -> bool:
    if not expected:
        return True
    return reported / expected >= report_percent


def evaluate_all(
    snapshot: UsageSnapshot,
    quotas: Mapping[TableName, SpaceQuota],
    *,
    region_counts: Mapping[TableName, int] | None = None,
    report_percent: float = 0.95,
) -> EvaluationReport:
    """Decide every quota-bearing table of ``quotas`` against ``snapshot``.

    A malformed quota lands in ``failures`` and does not stop the pass. When
    ``region_counts`` knows how many regions a table has, tables with too few
    reports are listed in ``skipped`` instead of being decided.
    """
    usage = usage_by_table(snapshot)
    expected_counts = region_counts or {}
    report = EvaluationReport()
    for table, quota in quotas.items():
        key = str(table)
        table_view = usage.get(table)
        reported = table_view.regions if table_view else 0
        if not _has_enough_reports(reported, expected_counts.get(table), report_percent):
            logger.warning(
                "Skipping %s: %d of %d regions reported",
                key,
                reported,
                expected_counts[table],
            )
            report.skipped.append(key)
            continue
        size = table_view.size if table_view else 0
        try:
            decision = evaluate(size, quota)
        except InvalidQuotaConfiguration as exc:
            logger.warning("Cannot evaluate quota for %s: %s", key, exc)
            report.failures[key] = str(exc)
            continue
        logger.debug("Table %s uses %d bytes -> %s", key, size, decision)
        report.decisions[key] = decision
    return report


def evaluate_namespaces(
    snapshot: UsageSnapshot, quotas: Mapping[str, SpaceQuota]
) -> EvaluationReport:
    """Decide namespace quotas; results are independent of any table quota."""
    report = EvaluationReport()
    for namespace, quota in quotas.items():
        size = namespace_usage(snapshot, namespace)
        try:
            decision = evaluate(size, quota)
        except InvalidQuotaConfiguration as exc:
            logger.warning("Cannot evaluate quota for namespace %s: %s", namespace, exc)
            report.failures[namespace] = str(exc)
            continue
        logger.debug("Namespace %s uses %d bytes -> %s", namespace, size, decision)
        report.decisions[namespace] = decision
    return report
