"""
Run the review reminder scheduler.

Reads settings from the environment (.env supported), connects to the
review store and either runs forever, ticking every TICK_INTERVAL_SECONDS,
or performs a single pass. Ticks are scheduled with APScheduler.

Usage:
    python -m scripts.run_scheduler                 # run until Ctrl+C
    python -m scripts.run_scheduler --once          # one tick, then exit
    python -m scripts.run_scheduler --learner 42    # manual check for one learner
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from recall import item_repo
from recall.config import load_settings
from recall.reminders import LoggingNotifier, ReviewScheduler
from recall.srs.database import ReviewStore, create_db_engine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send review reminders to learners")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument("--learner", help="Check one learner now, ignoring the delivery window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    item_repo.configure(settings.io_timeout_seconds)
    store = ReviewStore(engine=create_db_engine(io_timeout=settings.io_timeout_seconds))
    store.init_db()
    scheduler = ReviewScheduler.from_settings(store, settings, notifier=LoggingNotifier())

    if args.learner:
        event = scheduler.run_manual_check(args.learner)
        if event is None:
            print(f"Nothing due for {args.learner}")
        else:
            print(f"{args.learner}: {event.due_count} due -> {', '.join(event.subject_ids)}")
        return

    if args.once:
        report = scheduler.tick()
        print(f"Tick complete: {report.summary()}")
        return

    done = threading.Event()

    def handle_signal(signum, frame):
        print("\nStopping scheduler...")
        done.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    scheduler.start()
    print(f"Scheduler running ({scheduler.policy!r}). Press Ctrl+C to stop.")
    done.wait()
    scheduler.stop()
    print("✓ Scheduler stopped")


if __name__ == "__main__":
    main()
