"""
In-process daily scheduler for the nightly attendance jobs.

Nothing is scheduled at import time: the app's startup hook builds a
DailyScheduler, registers the jobs and starts it when RUN_SCHEDULER is set.
Fire times are wall-clock times in settings.BUSINESS_TZ.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from geoattend.services.time_rules import business_date, business_datetime
from geoattend.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


@dataclass
class DailyJob:
    name: str
    hour: int
    minute: int
    func: Callable[[date], object]
    last_run_date: Optional[date] = None


class DailyScheduler:
    def __init__(self, poll_seconds: float = 30.0):
        self.poll_seconds = poll_seconds
        self._jobs: Dict[str, DailyJob] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def jobs(self) -> List[DailyJob]:
        return list(self._jobs.values())

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_daily_job(self, name: str, hour: int, minute: int, func: Callable[[date], object]) -> DailyJob:
        """Register func(run_date) to fire once a day at hour:minute business time."""
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time {hour}:{minute} for job {name}")
        if name in self._jobs:
            raise ValueError(f"Job {name} already registered")
        job = DailyJob(name=name, hour=hour, minute=minute, func=func)
        self._jobs[name] = job
        return job

    def next_run_for(self, job: DailyJob, now: Optional[datetime] = None) -> datetime:
        """Next fire instant (UTC) strictly in the future, or today's slot if it has not run yet."""
        now = ensure_utc(now or now_utc())
        today = business_date(now)
        candidate = business_datetime(today, job.hour, job.minute)
        if candidate <= now and job.last_run_date == today:
            candidate = business_datetime(today + timedelta(days=1), job.hour, job.minute)
        elif candidate < now and job.last_run_date != today:
            # Today's slot has passed without a run; run_due picks it up immediately
            return now
        return candidate

    def run_due(self, now: Optional[datetime] = None) -> List[str]:
        """Fire every job whose slot for today has passed and that has not run today."""
        now = ensure_utc(now or now_utc())
        today = business_date(now)
        fired = []
        for job in self.jobs:
            if job.last_run_date == today:
                continue
            if business_datetime(today, job.hour, job.minute) > now:
                continue
            job.last_run_date = today
            fired.append(job.name)
            logger.info("[SCHEDULER] Running %s for %s", job.name, today)
            try:
                job.func(today)
            except Exception:
                logger.error("[SCHEDULER] Job %s failed for %s", job.name, today, exc_info=True)
        return fired

    def _loop(self) -> None:
        logger.info("[SCHEDULER] Started with jobs: %s", ", ".join(self._jobs) or "none")
        while not self._stop.is_set():
            try:
                self.run_due()
            except Exception:
                logger.error("[SCHEDULER] Tick failed", exc_info=True)
            self._stop.wait(self.poll_seconds)
        logger.info("[SCHEDULER] Stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="daily-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
