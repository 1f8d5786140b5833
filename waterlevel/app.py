"""High-level entrypoint for the water level harness."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from waterlevel.config.loader import load_app_config
from waterlevel.generator.signal import generate, samples_to_frame
from waterlevel.logger import logger
from waterlevel.queues import client_factory
from waterlevel.services.runner import Runner, RunSummary
from waterlevel.settings import app_settings, harness_settings, storage_settings
from waterlevel.tables import AsyncTableService, logging_filter, table_service_factory


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="waterlevel",
        description="Push synthetic hourly water level readings through a queue into a table store.",
    )
    parser.add_argument(
        "--days",
        type=float,
        default=harness_settings.duration_days,
        help="days of hourly samples to generate (default: %(default)s)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(app_settings.config_path),
        help="YAML file selecting the queue and table backends (default: %(default)s)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="only generate the samples and log their summary, without touching any backend",
    )
    return parser.parse_args(argv)


def preview(days: float) -> None:
    frame = samples_to_frame(generate(days))
    if frame.empty:
        logger.bind(days=days).info("No samples generated")
        return
    logger.bind(
        first=frame["date"].iloc[0].isoformat(),
        last=frame["date"].iloc[-1].isoformat(),
        min=float(frame["waterLevel"].min()),
        max=float(frame["waterLevel"].max()),
        mean=float(frame["waterLevel"].mean()),
    ).info(f"Generated {len(frame)} samples")


def run(argv: Optional[List[str]] = None) -> Optional[RunSummary]:
    """
    Entry point used by __main__.py.
    - Reads the backend config from --config (or APP_CONFIG_PATH).
    - Reads the table connection string from AZURE_STORAGE_CONNECTION_STRING when the table kind is 'rest'.
    """
    args = parse_args(argv)

    if args.preview:
        preview(args.days)
        return None

    logger.bind(config_path=str(args.config), days=args.days).info("Starting water level harness")
    cfg = load_app_config(args.config, connection_string=storage_settings.connection_string)

    table_service = table_service_factory(cfg.table)
    tables = AsyncTableService(table_service).with_filter(logging_filter)
    queue = client_factory(cfg.queue, harness_settings.queue_name)

    runner = Runner(
        queue=queue,
        tables=tables,
        table_name=harness_settings.table_name,
        duration_days=args.days,
        poll_timeout_s=harness_settings.poll_timeout_s,
        receive_batch=harness_settings.receive_batch,
    )
    try:
        return runner.run()
    finally:
        table_service.close()
