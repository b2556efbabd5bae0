# quickstats/services/polling.py
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional
import logging
import threading

from quickstats.core.errors import JobNotFoundError, TransportError
from quickstats.core.models import UploadJob

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 2.0
DEFAULT_MAX_RETRIES = 3
MAX_BACKOFF_S = 30.0


class PollerState(str, Enum):
    idle = "idle"
    polling = "polling"
    stopped = "stopped"


def retry_delay(failures: int, cap: float = MAX_BACKOFF_S) -> float:
    """1s, 2s, 4s, ... capped."""
    return min(2.0 ** max(0, failures - 1), cap)


class JobStatusPoller:
    """
    Timer-driven status refresh bound to one job id.

    - completed/failed stops polling
    - JobNotFoundError stops immediately, never retried
    - other TransportErrors are retried `max_retries` times with backoff,
      then surfaced through `on_error`
    - stop() cancels the pending timer; results arriving after stop are dropped
    """

    def __init__(
        self,
        fetch_status: Callable[[str], UploadJob],
        *,
        on_status: Callable[[UploadJob], None] | None = None,
        on_not_found: Callable[[str], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        interval: float = DEFAULT_INTERVAL_S,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ):
        self._fetch = fetch_status
        self._on_status = on_status
        self._on_not_found = on_not_found
        self._on_error = on_error
        self.interval = interval
        self.max_retries = max_retries
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._done = threading.Event()
        self.state = PollerState.idle
        self.job_id: Optional[str] = None
        self.failures = 0
        self.requests = 0

    # ---------- lifecycle ----------
    def start(self, job_id: str, initial_delay: float = 0.0) -> None:
        if not job_id:
            raise ValueError("job_id required")
        with self._lock:
            if self.state is PollerState.polling:
                raise RuntimeError(f"already polling job {self.job_id}")
            self.job_id = job_id
            self.state = PollerState.polling
            self.failures = 0
            self._done.clear()
            self._schedule_locked(initial_delay)
        log.info("polling started job_id=%s interval=%ss", job_id, self.interval)

    def stop(self) -> None:
        with self._lock:
            self._stop_locked()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until polling stops. Returns False on timeout."""
        return self._done.wait(timeout)

    @property
    def active(self) -> bool:
        return self.state is PollerState.polling

    def _stop_locked(self, signal: bool = True) -> None:
        # tick() passes signal=False and sets _done after its callback ran
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.state is PollerState.polling:
            log.info("polling stopped job_id=%s after %d requests", self.job_id, self.requests)
            self.state = PollerState.stopped
        if signal:
            self._done.set()

    def _schedule_locked(self, delay: float) -> None:
        if self.state is not PollerState.polling:
            return
        timer = self._timer_factory(delay, self.tick)
        timer.daemon = True
        self._timer = timer
        timer.start()

    # ---------- one refresh ----------
    def tick(self) -> None:
        with self._lock:
            if self.state is not PollerState.polling:
                return
            job_id = self.job_id
            self._timer = None
            self.requests += 1

        try:
            job = self._fetch(job_id)
        except JobNotFoundError as e:
            with self._lock:
                if self.state is not PollerState.polling:
                    return
                self._stop_locked(signal=False)
            log.info("job %s not found (%s); not retrying", job_id, e)
            try:
                if self._on_not_found:
                    self._on_not_found(job_id)
            finally:
                self._done.set()
            return
        except TransportError as e:
            with self._lock:
                if self.state is not PollerState.polling:
                    return
                self.failures += 1
                if self.failures <= self.max_retries:
                    delay = retry_delay(self.failures)
                    log.warning(
                        "status check failed for %s (attempt %d/%d), retrying in %.1fs: %s",
                        job_id, self.failures, self.max_retries, delay, e,
                    )
                    self._schedule_locked(delay)
                    return
                self._stop_locked(signal=False)
            log.error("status check for %s failed after %d retries: %s", job_id, self.max_retries, e)
            try:
                if self._on_error:
                    self._on_error(e)
            finally:
                self._done.set()
            return

        with self._lock:
            if self.state is not PollerState.polling:
                return
            self.failures = 0
            terminal = job.is_terminal
            if terminal:
                self._stop_locked(signal=False)

        try:
            if self._on_status:
                self._on_status(job)
        except Exception:
            log.exception("status handler failed for %s; polling stopped", job_id)
            with self._lock:
                self._stop_locked(signal=False)
            self._done.set()
            return
        finally:
            if terminal:
                self._done.set()

        if not terminal:
            with self._lock:
                self._schedule_locked(self.interval)
