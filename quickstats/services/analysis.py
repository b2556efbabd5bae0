# quickstats/services/analysis.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
import logging
import threading

from quickstats.core.errors import TransportError
from quickstats.core.models import GameData, JobStatus, UploadJob, VideoFile
from quickstats.core.progress import AnalysisProgress, AnalysisStage, ProgressTracker
from quickstats.services.basketball_api import BasketballApiClient, UploadOptions
from quickstats.services.compression import probe_duration_seconds
from quickstats.services.polling import JobStatusPoller
from quickstats.steps.transform import synthetic_completed_results, transform_backend_data

log = logging.getLogger(__name__)


class AnalysisSession:
    """
    Upload -> immediate status check -> polling -> transformation for one
    selected video. State lives in memory for the lifetime of the session.
    """

    def __init__(
        self,
        client: BasketballApiClient,
        *,
        poll_interval: float = 2.0,
        poll_max_retries: int = 3,
        poller_factory: Callable[..., JobStatusPoller] = JobStatusPoller,
        on_progress: Callable[[AnalysisProgress], None] | None = None,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.poll_max_retries = poll_max_retries
        self._poller_factory = poller_factory
        self._on_progress = on_progress
        self._lock = threading.RLock()

        self.tracker = ProgressTracker()
        self.video: Optional[VideoFile] = None
        self.job_id: Optional[str] = None
        self.game_data: Optional[GameData] = None
        self.last_status: Optional[UploadJob] = None
        self.poller: Optional[JobStatusPoller] = None

    # ---------- state ----------
    @property
    def progress(self) -> AnalysisProgress:
        return self.tracker.current

    @property
    def is_processing(self) -> bool:
        return self.tracker.stage in (AnalysisStage.initializing, AnalysisStage.processing)

    def _advance(self, stage: AnalysisStage, pct: float, message: str) -> None:
        with self._lock:
            if stage is AnalysisStage.completed:
                p = self.tracker.complete(message)
            elif stage is AnalysisStage.error:
                p = self.tracker.fail(message)
            else:
                p = self.tracker.advance(stage, pct, message)
        log.info("stage=%s progress=%.0f %s", p.stage.value, p.progress, p.message)
        if self._on_progress:
            self._on_progress(p)

    # ---------- actions ----------
    def select_video(self, path: str | Path) -> VideoFile:
        self.cancel()
        video = VideoFile.from_path(path)
        video.duration = probe_duration_seconds(video.path)
        with self._lock:
            self.video = video
            self.game_data = None
            self.job_id = None
            self.last_status = None
        return video

    def start_analysis(self, options: UploadOptions | None = None) -> None:
        if self.video is None:
            raise RuntimeError("select a video before starting analysis")
        if self.is_processing:
            raise RuntimeError("analysis already running")

        with self._lock:
            if self.tracker.stage is AnalysisStage.completed:
                self.tracker.reset()
            self.game_data = None
            self.poller = None
        options = options or UploadOptions()
        outer_progress = options.on_progress

        def upload_progress(pct: float) -> None:
            # 10-20% of the overall bar belongs to the upload
            self._advance(AnalysisStage.initializing, 10 + pct * 0.1, f"Uploading video... {round(pct)}%")
            if outer_progress:
                outer_progress(pct)

        self._advance(AnalysisStage.initializing, 10, "Preparing video for upload...")
        try:
            upload = self.client.upload_video(
                self.video,
                UploadOptions(
                    compress=options.compress,
                    quality=options.quality,
                    max_resolution=options.max_resolution,
                    on_progress=upload_progress,
                ),
            )
        except (TransportError, OSError) as e:
            log.error("upload failed: %s", e)
            # client errors already say what failed
            message = str(e) if isinstance(e, TransportError) else f"Upload failed: {e}"
            self._advance(AnalysisStage.error, 0, message)
            return

        with self._lock:
            self.job_id = upload.job_id
        self._advance(AnalysisStage.processing, 20, "Video uploaded, checking status immediately...")

        # A synchronous backend may finish and purge the job before the first
        # scheduled poll, so look once right away.
        immediate = self.client.get_job_status_silent(upload.job_id)
        if immediate is not None and immediate.status is JobStatus.completed and immediate.results:
            log.info("backend processed %s synchronously; using immediate results", upload.job_id)
            self._finish(immediate, "Analysis completed! Results cached.")
            return
        if immediate is not None and immediate.status is JobStatus.failed:
            self.handle_status(immediate)
            return

        self._advance(AnalysisStage.processing, 30, "Backend is analyzing video...")
        self._start_polling(upload.job_id)

    def _start_polling(self, job_id: str) -> None:
        poller = self._poller_factory(
            self.client.get_job_status,
            on_status=self.handle_status,
            on_not_found=self.handle_not_found,
            on_error=self.handle_error,
            interval=self.poll_interval,
            max_retries=self.poll_max_retries,
        )
        with self._lock:
            self.poller = poller
        poller.start(job_id, initial_delay=self.poll_interval)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until polling (if any) has stopped."""
        poller = self.poller
        if poller is None:
            return True
        return poller.wait(timeout)

    def cancel(self) -> None:
        with self._lock:
            poller, self.poller = self.poller, None
        if poller is not None:
            poller.stop()
        with self._lock:
            self.tracker.reset()

    def download_processed_video(self, dest: str | Path) -> Path:
        if not self.job_id:
            raise RuntimeError("no job to download")
        return self.client.save_processed_video(self.job_id, dest)

    # ---------- poller callbacks ----------
    def _finish(self, job: UploadJob, message: str) -> None:
        results = job.results if job.results is not None else synthetic_completed_results()
        game = transform_backend_data(results, job.video_url)
        with self._lock:
            self.last_status = job
            self.game_data = game
        self._advance(AnalysisStage.completed, 100, message)

    def handle_status(self, job: UploadJob) -> None:
        with self._lock:
            self.last_status = job
        if job.status is JobStatus.completed:
            self._finish(job, "Analysis completed! Results ready.")
        elif job.status is JobStatus.failed:
            self._advance(AnalysisStage.error, 0, f"Analysis failed: {job.error or 'Unknown error'}")
        elif job.status is JobStatus.processing:
            self._advance(AnalysisStage.processing, 50, "Backend is analyzing video...")

    def handle_not_found(self, job_id: str) -> None:
        # Fragile heuristic: a missing job is assumed to have been processed
        # synchronously and purged. Replace once the backend reports
        # synchronous completion explicitly.
        log.info("job %s vanished; assuming the backend completed it synchronously", job_id)
        placeholder = UploadJob(
            job_id=job_id,
            status=JobStatus.completed,
            results=synthetic_completed_results(),
        )
        self._finish(placeholder, "Analysis completed! (Backend processed synchronously)")

    def handle_error(self, exc: Exception) -> None:
        log.error("polling gave up: %s", exc)
        self._advance(AnalysisStage.error, 0, str(exc) or "Unknown error")
