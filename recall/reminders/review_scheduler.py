"""
Review Scheduler - periodic reminder trigger

On every tick:
1. The delivery policy picks the learners that may be reminded now
2. Each learner's due subjects are selected in priority order
3. Learners with anything due get exactly one ReminderEvent, capped at
   their daily maximum
4. The delivery time is recorded on the learner profile

Learners are processed independently on a small thread pool. A failure
for one learner (store, notifier, timeout) is logged and the tick moves on.
Each learner gets IO_TIMEOUT_SECONDS from the moment its work starts; a
hung learner is abandoned and the learners queued behind it move to a
fresh pool.

Ticks are driven by APScheduler (one job, max_instances=1, coalesced) and
never overlap: a tick that starts while another is running is skipped.
"""

from __future__ import annotations
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from recall.config import EngineSettings
from recall.reminders.delivery_window import DeliveryPolicy, ExactHourPolicy, QuietHoursPolicy
from recall.reminders.notifier import LoggingNotifier, Notifier, ReminderEvent
from recall.schemas import LearnerProfile
from recall.srs.constants import DEFAULT_MAX_PER_DELIVERY, DEFAULT_TICK_INTERVAL_SECONDS
from recall.srs.database import ReviewStore
from recall.srs.due_selection import select_due
from recall.srs.errors import NotifierUnavailable
from recall.srs.review_state import ensure_utc, utc_now
from recall.srs.strategies import StrategyRegistry

logger = logging.getLogger(__name__)

_CANCELLED = object()

TICK_JOB_ID = "review-tick"

# Interval ticks fire on multiples of the interval since the epoch
INTERVAL_ORIGIN = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class TickReport:
    """Outcome of one tick."""
    started_at: datetime
    ran: bool = True
    eligible: int = 0
    notified: list[str] = field(default_factory=list)
    nothing_due: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    cancelled: list[str] = field(default_factory=list)

    def summary(self) -> str:
        if not self.ran:
            return "tick skipped (previous tick still running)"
        return (
            f"{self.eligible} eligible, {len(self.notified)} notified, "
            f"{len(self.nothing_due)} with nothing due, {len(self.failed)} failed, "
            f"{len(self.cancelled)} cancelled"
        )


def build_policy(settings: EngineSettings) -> DeliveryPolicy:
    """Delivery policy named by REMINDER_POLICY."""
    if settings.reminder_policy == "window":
        return QuietHoursPolicy(settings.window_start_hour, settings.window_end_hour, settings.timezone)
    return ExactHourPolicy(settings.timezone)


class ReviewScheduler:
    """
    Periodically reminds learners about due reviews.

    Args:
        store: Review store (learners and review states)
        notifier: Reminder delivery (defaults to LoggingNotifier)
        policy: Delivery policy (defaults to ExactHourPolicy in UTC)
        registry: Strategy registry used by due selection
        interval_seconds: Time between ticks
        max_per_delivery: Cap for learners without a stored profile
        workers: Learners processed in parallel
        io_timeout: Seconds to wait for one learner before giving up
        clock: Source of the current time
    """

    def __init__(
        self,
        store: ReviewStore,
        notifier: Optional[Notifier] = None,
        policy: Optional[DeliveryPolicy] = None,
        registry: Optional[StrategyRegistry] = None,
        interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        max_per_delivery: int = DEFAULT_MAX_PER_DELIVERY,
        workers: int = 4,
        io_timeout: float = 30.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self.store = store
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.policy = policy if policy is not None else ExactHourPolicy()
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.max_per_delivery = max_per_delivery
        self.workers = workers
        self.io_timeout = io_timeout
        self.clock = clock

        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._background: Optional[BackgroundScheduler] = None
        self._job = None

    @classmethod
    def from_settings(
        cls,
        store: ReviewStore,
        settings: EngineSettings,
        notifier: Optional[Notifier] = None,
    ) -> "ReviewScheduler":
        return cls(
            store,
            notifier=notifier,
            policy=build_policy(settings),
            registry=settings.registry(),
            interval_seconds=settings.tick_interval_seconds,
            max_per_delivery=settings.max_items_per_delivery,
            workers=settings.scheduler_workers,
            io_timeout=settings.io_timeout_seconds,
        )

    # ---- Per-learner processing ----

    def _build_event(self, learner_id: str, cap: int, now: datetime) -> Optional[ReminderEvent]:
        states = self.store.review_states(learner_id)
        due = select_due(states, now, registry=self.registry)
        if not due:
            return None

        chosen = due[:max(0, cap)]
        return ReminderEvent(
            learner_id=learner_id,
            due_count=len(chosen),
            subject_ids=tuple(s.subject_id for s in chosen),
            created_at=now,
        )

    def _deliver(self, event: ReminderEvent) -> None:
        try:
            self.notifier.deliver(event)
        except Exception as exc:
            raise NotifierUnavailable(f"Could not remind {event.learner_id}: {exc}") from exc

    def _record_delivery(self, learner_id: str, now: datetime) -> None:
        try:
            self.store.mark_notified(learner_id, now)
        except Exception:
            # Delivered but unrecorded: a later tick may remind again
            logger.exception("Reminded %s but could not record the delivery time", learner_id)

    def _process_learner(
        self,
        profile: LearnerProfile,
        now: datetime,
        deadline: Optional[float] = None,
    ) -> Optional[ReminderEvent]:
        event = self._build_event(profile.learner_id, profile.max_per_day, now)
        if event is None or event.due_count == 0:
            return None
        if deadline is not None and time.monotonic() > deadline:
            raise TimeoutError(f"Deadline passed before reminding {profile.learner_id}")
        self._deliver(event)
        if deadline is not None and time.monotonic() > deadline:
            logger.warning("Reminder for %s delivered after its deadline", profile.learner_id)
        self._record_delivery(profile.learner_id, now)
        return event

    # ---- Tick ----

    def tick(self, now: Optional[datetime] = None) -> TickReport:
        """
        Run one scheduling pass.

        Returns:
            TickReport (ran=False if another tick was still running)
        """
        now = ensure_utc(now) if now is not None else self.clock()
        report = TickReport(started_at=now)

        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Reminder tick at %s skipped: previous tick still running", now.isoformat())
            report.ran = False
            return report

        try:
            logger.info("Reminder tick started at %s (%r)", now.isoformat(), self.policy)
            try:
                learners = self.policy.eligible_learners(self.store, now)
            except Exception:
                logger.exception("Could not load eligible learners; tick aborted")
                report.failed["*"] = "eligible learners unavailable"
                return report

            report.eligible = len(learners)
            logger.info("%d learner(s) eligible", len(learners))
            if learners:
                self._run_learners(learners, now, report)

            logger.info("Reminder tick finished: %s", report.summary())
            return report
        finally:
            self._tick_lock.release()

    def _run_learners(self, learners: list[LearnerProfile], now: datetime, report: TickReport) -> None:
        started: dict[str, float] = {}

        def run(profile: LearnerProfile):
            # Learners not yet started when stop() is called are left for later
            if self._stop_event.is_set():
                return _CANCELLED
            started[profile.learner_id] = time.monotonic()
            deadline = started[profile.learner_id] + self.io_timeout
            return self._process_learner(profile, now, deadline=deadline)

        executors: list[ThreadPoolExecutor] = []
        pending: dict[Future, LearnerProfile] = {}

        def dispatch(profiles: list[LearnerProfile]) -> None:
            executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="reminder")
            executors.append(executor)
            for profile in profiles:
                pending[executor.submit(run, profile)] = profile

        poll = min(self.io_timeout / 2, 0.5)
        dispatch(learners)
        try:
            while pending:
                done, _ = wait(pending, timeout=poll, return_when=FIRST_COMPLETED)
                for future in done:
                    self._record_result(pending.pop(future).learner_id, future, report)

                clock = time.monotonic()
                expired = [
                    future for future, profile in pending.items()
                    if not future.done()
                    and profile.learner_id in started
                    and clock - started[profile.learner_id] >= self.io_timeout
                ]
                if not expired:
                    continue

                for future in expired:
                    learner_id = pending.pop(future).learner_id
                    logger.error("Learner %s timed out after %.1fs", learner_id, self.io_timeout)
                    report.failed[learner_id] = "timeout"

                # Hung workers keep their threads; queued learners move to a fresh pool
                requeued = [profile for future, profile in pending.items() if future.cancel()]
                for future in [f for f in pending if f.cancelled()]:
                    del pending[future]
                if requeued:
                    dispatch(requeued)
        finally:
            for executor in executors:
                executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _record_result(learner_id: str, future: Future, report: TickReport) -> None:
        try:
            result = future.result()
        except TimeoutError:
            logger.error("Learner %s ran out of time before delivery", learner_id)
            report.failed[learner_id] = "timeout"
            return
        except Exception as exc:
            logger.exception("Failed to process learner %s", learner_id)
            report.failed[learner_id] = str(exc)
            return

        if result is _CANCELLED:
            report.cancelled.append(learner_id)
        elif result is None:
            report.nothing_due.append(learner_id)
        else:
            logger.info("Reminded %s about %d subject(s)", learner_id, result.due_count)
            report.notified.append(learner_id)

    def run_manual_check(self, learner_id: str, now: Optional[datetime] = None) -> Optional[ReminderEvent]:
        """
        Check one learner right away, ignoring the delivery window.

        Learners without a stored profile are capped at max_per_delivery.

        Returns:
            The delivered ReminderEvent, or None if nothing is due

        Raises:
            StoreUnavailable, NotifierUnavailable
        """
        now = ensure_utc(now) if now is not None else self.clock()
        profile = self.store.get_learner(learner_id)
        cap = profile.max_per_day if profile is not None else self.max_per_delivery

        event = self._build_event(learner_id, cap, now)
        if event is None:
            logger.info("Manual check for %s: nothing due", learner_id)
            return None

        self._deliver(event)
        if profile is not None:
            self._record_delivery(learner_id, now)
        logger.info("Manual check for %s: %d subject(s) due", learner_id, event.due_count)
        return event

    # ---- Background schedule ----

    @property
    def running(self) -> bool:
        return self._background is not None and self._background.running

    def build_trigger(self) -> Union[CronTrigger, IntervalTrigger]:
        """Hourly ticks fire at the top of the hour, other intervals on multiples of the interval."""
        if self.interval_seconds == 3600:
            return CronTrigger(minute=0, timezone="UTC")
        return IntervalTrigger(seconds=self.interval_seconds, start_date=INTERVAL_ORIGIN, timezone="UTC")

    def start(self) -> None:
        """Run ticks on an APScheduler background thread until stop() is called."""
        if self.running:
            raise RuntimeError("Scheduler already running")
        self._stop_event.clear()
        self._background = BackgroundScheduler(timezone="UTC")
        self._job = self._background.add_job(
            self.tick,
            trigger=self.build_trigger(),
            id=TICK_JOB_ID,
            name="Review reminder tick",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=max(1, int(self.interval_seconds)),
        )
        self._background.start()
        logger.info("Reminder scheduler started (every %ss, %r)", self.interval_seconds, self.policy)

    def stop(self, wait: bool = True) -> bool:
        """
        Stop scheduling new ticks.

        Learners already being processed finish; learners not yet started
        in the current tick are skipped.

        Args:
            wait: Block until a tick in progress has finished

        Returns:
            True once the scheduler is no longer running
        """
        self._stop_event.set()
        if self._background is None:
            return True
        if self._background.running:
            self._background.shutdown(wait=wait)
        self._background = None
        self._job = None
        logger.info("Reminder scheduler stopped")
        return True
