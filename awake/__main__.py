#!/usr/bin/env python3
"""
Run the job engine and its HTTP host.

Usage:
    python -m awake
    python -m awake --store memory --port 8080
"""

import sys
import logging
import argparse
from pathlib import Path

from awake.config import STORE_BACKENDS, Settings, load_settings
from awake.errors import RehydrationError, StoreError
from awake.runner.caller import OutboundCaller
from awake.runner.executor import JobExecutor
from awake.runner.rehydrator import Rehydrator
from awake.runner.scheduler import Scheduler
from awake.server import create_app
from awake.service import JobService
from awake.store import create_store


logger = logging.getLogger("awake")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Recurring HTTP job engine')
    parser.add_argument('--db', type=Path, help='sqlite database path (env DB_PATH)')
    parser.add_argument('--host', help='bind address (env HOST)')
    parser.add_argument('--port', type=int, help='HTTP port (env PORT)')
    parser.add_argument('--store', choices=STORE_BACKENDS, help='job store backend (env AWAKE_STORE)')
    parser.add_argument('--log-level', help='logging level (env AWAKE_LOG_LEVEL)')
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command line flags win over environment values."""
    if args.db:
        settings.db_path = args.db
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    if args.store:
        settings.store = args.store
    if args.log_level:
        settings.log_level = args.log_level.upper()
    return settings


def build_engine(settings: Settings):
    """
    Wire store, caller, executor, scheduler and service.

    Returns:
        (service, scheduler, rehydrator)
    """
    store = create_store(settings.store, settings.db_path)
    caller = OutboundCaller(timeout=settings.http_timeout)
    executor = JobExecutor(store, caller)
    scheduler = Scheduler(store, executor, fetch_retry_ms=settings.fetch_retry_ms)
    service = JobService(store, scheduler, run_log_limit=settings.run_log_limit)
    return service, scheduler, Rehydrator(store, scheduler)


def close_engine(service: JobService, scheduler: Scheduler) -> None:
    """Stop pending wakes, then release the outbound session and the store."""
    scheduler.shutdown()
    scheduler.executor.caller.close()
    service.store.close()


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(load_settings(), args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        service, scheduler, rehydrator = build_engine(settings)
        rehydrator.start()
    except (RehydrationError, StoreError) as e:
        logger.critical(f"Startup failed: {e}")
        return 1

    if settings.http_timeout is None:
        logger.warning("No outbound timeout configured (AWAKE_HTTP_TIMEOUT); a hung target stalls its job")

    app = create_app(service)
    logger.info(f"awake running on {settings.host}:{settings.port} ({settings.store} store)")
    try:
        app.run(host=settings.host, port=settings.port, debug=False, use_reloader=False)
    finally:
        close_engine(service, scheduler)
    return 0


if __name__ == '__main__':
    sys.exit(main())
