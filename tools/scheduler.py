"""
Sync Scheduler — runs the site-wide sync on a fixed clock schedule in a
daemon thread, using a private schedule.Scheduler.

Runs start at the top of every interval_hours-th hour of the configured
timezone (hours 0, 2, 4 ... for a two hour interval), like a
"0 */N * * *" cron in that zone.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

import schedule

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Schedule and run the site-wide sync job."""

    def __init__(self, job: Callable[[], object], interval_hours: int = 2, timezone: str = "Asia/Kolkata"):
        self.job = job
        self.interval_hours = max(1, int(interval_hours))
        self.tz = ZoneInfo(timezone)
        self.scheduler = schedule.Scheduler()
        self.running = False
        self._stop_event = threading.Event()
        self._thread = None

    def _clock(self) -> datetime:
        return datetime.now(self.tz)

    def _now(self) -> str:
        return self._clock().strftime("%Y-%m-%d %H:%M:%S %Z")

    def anchor_minute(self) -> int:
        """Minute past the hour, in process-local time, at which the configured timezone is at :00."""
        now = self._clock()
        local_offset = now.astimezone().utcoffset()
        return int((local_offset - now.utcoffset()).total_seconds() // 60) % 60

    def run_job(self) -> None:
        """The task run on every tick; failures are logged, never raised into the loop."""
        started = time.monotonic()
        logger.info(f"[Scheduler] Sync started at {self._now()}")
        try:
            report = self.job()
        except Exception:
            logger.exception("[Scheduler] Sync run failed")
            return

        summary = report.to_dict() if hasattr(report, "to_dict") else report
        logger.info(
            f"[Scheduler] Sync finished at {self._now()} in {time.monotonic() - started:.1f}s: {summary}"
        )

    def on_hour(self) -> None:
        """Hourly tick; runs the job only on hours that are a multiple of the interval."""
        if self._clock().hour % self.interval_hours == 0:
            self.run_job()

    def start(self) -> threading.Event:
        """Register the job and start the background thread. Returns the stop event."""
        if self.running:
            logger.warning("[Scheduler] Scheduler is already running")
            return self._stop_event

        self.scheduler.every().hour.at(f":{self.anchor_minute():02d}").do(self.on_hour)
        self.running = True
        self._stop_event.clear()

        def loop():
            while not self._stop_event.is_set():
                self.scheduler.run_pending()
                self._stop_event.wait(1)

        self._thread = threading.Thread(target=loop, name="sync-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"[Scheduler] Started, running every {self.interval_hours}h on the hour ({self.tz.key})")
        return self._stop_event

    def stop(self) -> None:
        self._stop_event.set()
        self.scheduler.clear()
        self.running = False
        logger.info("[Scheduler] Stopped")
