"""CLI entrypoint for the space quota observer."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .api import QuotaObserverAPI
from .models import EvaluationReport, QuotaObserverConfig, TableName


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="space-quota", description="Evaluate space quotas against region usage reports."
    )
    parser.add_argument("--store", type=Path, help="Path to persistent JSONL report store.")
    parser.add_argument(
        "--report-percent",
        type=float,
        default=0.95,
        help="Fraction of a table's regions that must report before it is evaluated.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest a JSONL region report file.")
    ingest.add_argument("path", type=Path, help="Path to report JSONL.")

    usage = sub.add_parser("usage", help="Print per-table usage.")
    usage.add_argument("--table", default=None, help="Only show this table.")

    evaluate = sub.add_parser("evaluate", help="Evaluate quotas and print decisions.")
    evaluate.add_argument("--quotas", type=Path, required=True, help="Path to quota JSONL.")
    evaluate.add_argument(
        "--namespaces", action="store_true", help="Also evaluate namespace quotas."
    )

    return parser


def _config_from_args(args: argparse.Namespace) -> QuotaObserverConfig:
    return QuotaObserverConfig(
        report_percent=args.report_percent,
        store_path=str(args.store) if args.store else None,
    )


def _print_report(report: EvaluationReport, *, label: str) -> None:
    for subject, decision in sorted(report.decisions.items()):
        print(f"{label} {subject}: {decision}")
    for subject, error in sorted(report.failures.items()):
        print(f"{label} {subject}: INVALID ({error})")
    for subject in sorted(report.skipped):
        print(f"{label} {subject}: SKIPPED (insufficient region reports)")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    config = _config_from_args(args)
    api = QuotaObserverAPI(config)

    if args.command == "ingest":
        api.ingest_file(args.path)
        return 0
    if args.command == "usage":
        wanted = TableName.value_of(args.table) if args.table is not None else None
        rows = [u for u in api.usage() if wanted is None or u.table == wanted]
        if not rows:
            print("No region reports.", file=sys.stdout)
            return 0
        for row in rows:
            print(f"{row.table} regions={row.regions} size={row.size}")
        return 0
    if args.command == "evaluate":
        api.load_quotas(args.quotas)
        report = api.evaluate()
        _print_report(report, label="table")
        ok = report.ok
        if args.namespaces:
            ns_report = api.evaluate_namespaces()
            _print_report(ns_report, label="namespace")
            ok = ok and ns_report.ok
        return 0 if ok else 1
    parser.error(f"Unsupported command {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
