from typing import Optional


class TransportError(Exception):
    """Non-2xx answer (or no answer at all) from the proxy or the backend."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status_text: str = "",
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body


class JobNotFoundError(TransportError):
    """Status lookup returned 404: the backend holds no record of the job.

    Synchronous backends purge a job as soon as its results are delivered, so
    callers treat this as a soft condition rather than a failure.
    """

    def __init__(self, job_id: str, status_text: str = "Not Found", body: str = ""):
        super().__init__(f"Job not found: {job_id}", 404, status_text, body)
        self.job_id = job_id


class TransportTimeoutError(TransportError):
    """A network call exceeded its deadline."""


class CompressionError(Exception):
    """Client-side transcode failed; the caller falls back to the original file."""


class InvalidTransitionError(ValueError):
    pass
