# quickstats/routers/proxy.py
"""
Same-origin relays to the analysis backend.

Browsers cannot call the GPU backend directly (different origin), so uploads,
status checks and downloads go through these routes. Backend failures keep
their status code and are wrapped as {"error": "..."}; transport failures on
our side become 500 with the same envelope.
"""
from __future__ import annotations

from typing import Iterator
from urllib.parse import quote
import logging

import requests
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from quickstats.config import Settings
from quickstats.routers.deps import get_app_settings

router = APIRouter(prefix="/api", tags=["proxy"])
logger = logging.getLogger("quickstats.proxy")

CHUNK = 1024 * 1024  # 1MB


def _is_success(r: requests.Response) -> bool:
    return 200 <= r.status_code < 300


def _backend_error(r: requests.Response, label: str) -> JSONResponse:
    text = r.text
    logger.error("%s status=%s body=%r", label, r.status_code, text[:500])
    r.close()
    return JSONResponse(
        {"error": f"{label}: {r.reason or ''} - {text}"},
        status_code=r.status_code,
    )


def _proxy_error(exc: Exception, label: str) -> JSONResponse:
    logger.error("%s: %s", label, exc)
    return JSONResponse({"error": f"{label}: {exc}"}, status_code=500)


@router.post("/upload-proxy")
def upload_proxy(
    file: UploadFile = File(...),
    generate_video: str = Form("true"),
    settings: Settings = Depends(get_app_settings),
):
    url = f"{settings.UPLOAD_BACKEND_URL}/api/upload"
    filename = file.filename or "upload.mp4"
    logger.info("forwarding upload filename=%s to %s", filename, url)
    try:
        r = requests.post(
            url,
            files={"file": (filename, file.file, file.content_type or "application/octet-stream")},
            data={"generate_video": generate_video},
            timeout=settings.UPLOAD_TIMEOUT_S,
            allow_redirects=True,
        )
    except requests.RequestException as e:
        return _proxy_error(e, "Proxy error")
    finally:
        try:
            file.file.close()
        except OSError:
            pass

    logger.info("backend upload response status=%s", r.status_code)
    if not _is_success(r):
        return _backend_error(r, "Backend error")
    try:
        data = r.json()
    except ValueError as e:
        return _proxy_error(e, "Proxy error")
    logger.info("backend accepted upload job_id=%s", data.get("job_id") if isinstance(data, dict) else None)
    return JSONResponse(data)


@router.get("/status-proxy/{job_id}")
def status_proxy(job_id: str, settings: Settings = Depends(get_app_settings)):
    url = f"{settings.STATUS_BACKEND_URL}/api/status/{quote(job_id, safe='')}"
    logger.info("checking status job_id=%s", job_id)
    try:
        r = requests.get(url, timeout=settings.STATUS_TIMEOUT_S)
    except requests.RequestException as e:
        return _proxy_error(e, "Status proxy error")

    if not _is_success(r):
        return _backend_error(r, "Backend error")
    try:
        data = r.json()
    except ValueError as e:
        return _proxy_error(e, "Status proxy error")
    logger.debug("status job_id=%s payload=%s", job_id, data)
    return JSONResponse(data)


def _stream_body(r: requests.Response) -> Iterator[bytes]:
    sent = 0
    try:
        for chunk in r.iter_content(chunk_size=CHUNK):
            if chunk:
                sent += len(chunk)
                yield chunk
    finally:
        r.close()
        logger.info("download relayed %d bytes", sent)


@router.get("/download-proxy/{job_id}")
def download_proxy(job_id: str, settings: Settings = Depends(get_app_settings)):
    url = f"{settings.DOWNLOAD_BACKEND_URL}/api/download/{quote(job_id, safe='')}"
    logger.info("forwarding download job_id=%s", job_id)
    try:
        r = requests.get(url, timeout=settings.DOWNLOAD_TIMEOUT_S, stream=True)
    except requests.RequestException as e:
        return _proxy_error(e, "Proxy download error")

    if not _is_success(r):
        return _backend_error(r, "Backend download error")

    headers = {"Content-Disposition": f'attachment; filename="processed_video_{job_id}.mp4"'}
    # iter_content decodes gzip/deflate, so an encoded length no longer matches
    length = r.headers.get("Content-Length")
    if length and not r.headers.get("Content-Encoding"):
        headers["Content-Length"] = length
    return StreamingResponse(_stream_body(r), media_type="video/mp4", headers=headers)
