"""
Due Check Runner Daemon

Runs the maintenance due check (scan + notification dispatch) on a fixed
interval, independently of the API process. Safe to run alongside the API's
own timer: duplicate notifications are prevented by the per-record flag.

    python due_check_runner.py          # loop forever
    python due_check_runner.py --once   # single sweep, then exit
"""

import argparse
import logging
import time

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [due_check_runner] %(levelname)s %(message)s",
)
log = logging.getLogger("upkeep.due_check_runner")

from core.config import settings  # noqa: E402
from core.db import SessionLocal, init_db  # noqa: E402
from core.errors import StoreUnavailable  # noqa: E402
from modules.maintenance.sweep import run_due_check  # noqa: E402
from modules.notifications.dispatcher import MaintenanceDispatcher  # noqa: E402


def run_once(notifier=None):
    """One sweep in its own session. Returns the DueCheckResult."""
    session = SessionLocal()
    try:
        return run_due_check(session, notifier or MaintenanceDispatcher())
    finally:
        session.close()


def main_loop(interval_seconds: float):
    """Main polling loop."""
    log.info(f"Due check runner started (every {interval_seconds / 3600:g}h)")
    notifier = MaintenanceDispatcher()

    while True:
        try:
            run_once(notifier)
        except StoreUnavailable as e:
            log.warning(f"Store unavailable, retrying next interval: {e}")
        except Exception as e:
            log.error(f"Main loop error: {e}", exc_info=True)

        time.sleep(interval_seconds)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Maintenance due check runner")
    parser.add_argument("--once", action="store_true", help="run a single sweep and exit")
    args = parser.parse_args(argv)

    init_db()
    if args.once:
        result = run_once()
        log.info(f"Due check finished: {result.model_dump_json()}")
        return 0

    interval = settings.due_check_interval_hours * 3600
    if interval <= 0:
        parser.error("DUE_CHECK_INTERVAL_HOURS must be positive for the polling loop")
    main_loop(interval)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
