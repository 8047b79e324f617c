#!/usr/bin/env python3
"""Run alteration-count aggregation from a JSON run config."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from altcount import (  # noqa: E402
    AlterationCountError,
    AlterationCountPipeline,
    RunConfig,
    RunConfigLoader,
)
from altcount.publishers import JsonCountsPublisher, Publisher, TsvCountsPublisher  # noqa: E402
from altcount.storage import DuckDBTableLoader  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run alteration counts from JSON config")
    parser.add_argument("--config", required=True, help="Path to run JSON config")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Runner log level.",
    )
    return parser.parse_args(argv)


def build_publishers(config: RunConfig) -> list[Publisher]:
    publishers: list[Publisher] = []
    for spec in config.publishers:
        params = dict(spec.params)

        if spec.name == "json_counts":
            publishers.append(JsonCountsPublisher(**params))
        elif spec.name == "tsv_counts":
            publishers.append(TsvCountsPublisher(**params))
        else:
            raise ValueError(f"Unknown publisher: {spec.name}")

    return publishers


def load_tables(config: RunConfig, logger: logging.Logger) -> None:
    if not config.tables:
        return

    loader = DuckDBTableLoader(db_path=config.db_path)
    loader.initialize()
    for table_name, path in config.tables.items():
        loaded = loader.load_path(table_name, path)
        logger.info("Table %s: %s rows from %s", table_name, loaded, path)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("altcount.runner")
    started = time.perf_counter()

    try:
        config = RunConfigLoader().load(args.config)
        publishers = build_publishers(config)
        load_tables(config, logger)

        pipeline = AlterationCountPipeline.from_duckdb(config.db_path, settings=config.engine)
        reports = []
        for alteration_type in config.alteration_types:
            report = pipeline.run(config.scope, alteration_type)
            for publisher in publishers:
                publisher.publish(alteration_type, report.records)
            reports.append(report)
    except (AlterationCountError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    payload = {
        "db_path": str(config.db_path),
        "studies": list(config.scope.scoped_study_ids()),
        "results": [
            {
                "alteration_type": report.alteration_type.value,
                "raw_records": report.raw_record_count,
                "genes": report.record_count,
                "annotated_records": report.annotated_records,
                "contributing_studies": sorted(report.contributing_study_ids),
            }
            for report in reports
        ],
        "publishers": [spec.name for spec in config.publishers],
    }
    print(json.dumps(payload, indent=2))
    logger.info("Finished in %.2fs", time.perf_counter() - started)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
