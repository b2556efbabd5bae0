# quickstats/services/basketball_api.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Type, TypeVar
import logging
import mimetypes
import shutil
import tempfile

import requests
from pydantic import BaseModel, ValidationError

from quickstats.config import Settings
from quickstats.core.errors import (
    CompressionError,
    JobNotFoundError,
    TransportError,
    TransportTimeoutError,
)
from quickstats.core.models import UploadJob, UploadResponse, VideoFile
from quickstats.services.compression import (
    DEFAULT_MAX_RESOLUTION,
    DEFAULT_QUALITY,
    compress_video,
)

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

COMPRESSION_THRESHOLD_BYTES = 20 * 1024 * 1024


@dataclass
class UploadOptions:
    compress: bool = True
    quality: float = DEFAULT_QUALITY          # 0.1 .. 1.0
    max_resolution: int = DEFAULT_MAX_RESOLUTION
    on_progress: Optional[Callable[[float], None]] = None  # receives 0..100


class BasketballApiClient:
    """Typed calls against the same-origin proxy routes."""

    def __init__(
        self,
        base_url: str,
        *,
        upload_timeout: float = 30 * 60,
        status_timeout: float = 30,
        download_timeout: float = 30 * 60,
        compression_threshold_bytes: int = COMPRESSION_THRESHOLD_BYTES,
        scratch_dir: str | Path | None = None,
        session: requests.Session | None = None,
        compressor: Callable[..., Path] = compress_video,
    ):
        self.base_url = base_url.rstrip("/")
        self.upload_timeout = upload_timeout
        self.status_timeout = status_timeout
        self.download_timeout = download_timeout
        self.compression_threshold_bytes = compression_threshold_bytes
        self.scratch_dir = Path(scratch_dir) if scratch_dir else None
        self.session = session or requests.Session()
        self.compressor = compressor

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "BasketballApiClient":
        return cls(
            settings.PROXY_URL,
            upload_timeout=settings.UPLOAD_TIMEOUT_S,
            status_timeout=settings.STATUS_TIMEOUT_S,
            download_timeout=settings.DOWNLOAD_TIMEOUT_S,
            compression_threshold_bytes=settings.compression_threshold_bytes,
            scratch_dir=Path(settings.DATA_DIR) / "tmp",
            **kwargs,
        )

    # ---------- transport ----------
    def _request(self, method: str, path: str, *, label: str, timeout: float, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=timeout, **kwargs)
        except requests.Timeout as e:
            log.error("%s timed out after %ss url=%s", label, timeout, url)
            raise TransportTimeoutError(f"{label} timed out after {timeout}s") from e
        except requests.RequestException as e:
            log.error("%s request error url=%s: %s", label, url, e)
            raise TransportError(f"{label} failed: {e}") from e

        if not 200 <= r.status_code < 300:
            body = r.text
            reason = r.reason or ""
            log.error("%s failed status=%s body=%r", label, r.status_code, body[:200])
            r.close()
            raise TransportError(f"{label} failed: {reason} - {body}", r.status_code, reason, body)
        return r

    @staticmethod
    def _parse(model: Type[M], r: requests.Response, label: str) -> M:
        try:
            return model.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(f"{label} returned a malformed response: {e}", r.status_code, r.reason or "", r.text) from e

    # ---------- upload ----------
    def _maybe_compress(self, path: Path, options: UploadOptions, scratch: Path) -> Path:
        size = path.stat().st_size
        if not options.compress or size <= self.compression_threshold_bytes:
            return path
        try:
            out = self.compressor(
                path, scratch, quality=options.quality, max_resolution=options.max_resolution
            )
        except CompressionError as e:
            log.warning("compression failed for %s, uploading original: %s", path.name, e)
            return path
        log.info("compressed %s: %d -> %d bytes", path.name, size, Path(out).stat().st_size)
        return Path(out)

    def upload_video(self, file: str | Path | VideoFile, options: UploadOptions | None = None) -> UploadResponse:
        path = file.path if isinstance(file, VideoFile) else Path(file)
        options = options or UploadOptions()

        def progress(pct: float) -> None:
            if options.on_progress:
                options.on_progress(pct)

        if self.scratch_dir:
            self.scratch_dir.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix="quickstats_", dir=self.scratch_dir))
        try:
            to_send = self._maybe_compress(path, options, scratch)
            name = path.name if to_send == path else f"{path.stem}.mp4"
            mime, _ = mimetypes.guess_type(name)

            log.info("uploading %s (%d bytes) via proxy", name, to_send.stat().st_size)
            progress(0.0)
            with to_send.open("rb") as fh:
                r = self._request(
                    "POST",
                    "/api/upload-proxy",
                    label="Upload",
                    timeout=self.upload_timeout,
                    files={"file": (name, fh, mime or "application/octet-stream")},
                    data={"generate_video": "true"},
                )
            progress(100.0)
        finally:
            # compressed copies live only for the duration of the upload
            shutil.rmtree(scratch, ignore_errors=True)

        return self._parse(UploadResponse, r, "Upload")

    # ---------- status ----------
    def get_job_status(self, job_id: str) -> UploadJob:
        log.debug("checking job status job_id=%s", job_id)
        try:
            r = self._request(
                "GET", f"/api/status-proxy/{job_id}", label="Status check", timeout=self.status_timeout
            )
        except TransportError as e:
            if e.status_code == 404:
                raise JobNotFoundError(job_id, e.status_text or "Not Found", e.body) from e
            raise
        return self._parse(UploadJob, r, "Status check")

    def get_job_status_silent(self, job_id: str) -> Optional[UploadJob]:
        """Like get_job_status but returns None instead of raising."""
        try:
            return self.get_job_status(job_id)
        except TransportError as e:
            log.info("silent status check for %s returned nothing: %s", job_id, e)
            return None

    # ---------- download ----------
    def download_processed_video(self, job_id: str) -> bytes:
        r = self._request(
            "GET", f"/api/download-proxy/{job_id}", label="Download", timeout=self.download_timeout
        )
        return r.content

    def save_processed_video(self, job_id: str, dest: str | Path, chunk_size: int = 1024 * 1024) -> Path:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        r = self._request(
            "GET",
            f"/api/download-proxy/{job_id}",
            label="Download",
            timeout=self.download_timeout,
            stream=True,
        )
        try:
            with dest.open("wb") as out:
                for chunk in r.iter_content(chunk_size=chunk_size):
                    if chunk:
                        out.write(chunk)
        except requests.RequestException as e:
            dest.unlink(missing_ok=True)
            raise TransportError(f"Download interrupted: {e}") from e
        finally:
            r.close()
        return dest
