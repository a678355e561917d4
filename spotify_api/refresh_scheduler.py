import logging
import threading
from typing import Callable, List, Optional

import schedule

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_SECONDS = 60


class RefreshScheduler:
    """Runs ``job`` every ``interval_seconds`` on a background thread.

    At most one job is registered: ``start()`` cancels the previous job
    before scheduling a new one.
    """

    def __init__(
        self,
        job: Callable[[], object],
        *,
        interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS,
        poll_seconds: float = 1.0,
    ):
        self.job = job
        self.interval_seconds = int(interval_seconds)
        self.poll_seconds = float(poll_seconds)
        self._scheduler = schedule.Scheduler()
        self._job: Optional[schedule.Job] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @property
    def jobs(self) -> List[schedule.Job]:
        return list(self._scheduler.jobs)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._job is not None:
                self._scheduler.cancel_job(self._job)
            self._job = self._scheduler.every(self.interval_seconds).seconds.do(self._run_job)

            if not self.running:
                self._stop.clear()
                self._thread = threading.Thread(target=self._loop, name="spotify-token-refresh", daemon=True)
                self._thread.start()

        logger.info(f"Token refresh scheduled every {self.interval_seconds} seconds")

    def stop(self) -> None:
        with self._lock:
            if self._job is not None:
                self._scheduler.cancel_job(self._job)
                self._job = None
            self._stop.set()
            thread, self._thread = self._thread, None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.poll_seconds * 2))

    def run_pending(self) -> None:
        self._scheduler.run_pending()

    def _run_job(self) -> None:
        try:
            self.job()
        except Exception as e:
            logger.error(f"Scheduled token refresh failed: {e}")

    def _loop(self) -> None:
        while not self._stop.wait(self.poll_seconds):
            self.run_pending()
