"""Tests for the upload/status/download relay routes."""

import json
from unittest.mock import patch

import pytest
import requests
from fastapi.testclient import TestClient

from quickstats.config import Settings
from quickstats.main import create_app


def _response(status=200, body=None, content=b"", reason="OK", headers=None):
    r = requests.Response()
    r.status_code = status
    r.reason = reason
    r._content = json.dumps(body).encode() if body is not None else content
    r._content_consumed = True
    r.encoding = "utf-8"
    r.headers.update(headers or {})
    return r


@pytest.fixture
def settings():
    return Settings(
        UPLOAD_BACKEND_URL="http://upload-backend",
        STATUS_BACKEND_URL="http://status-backend",
        DOWNLOAD_BACKEND_URL="http://download-backend",
        UPLOAD_TIMEOUT_S=1800,
        STATUS_TIMEOUT_S=15,
        DOWNLOAD_TIMEOUT_S=900,
    )


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


class TestUploadProxy:
    def test_forwards_multipart_to_backend(self, client):
        backend = _response(body={"job_id": "abc123", "status": "queued", "message": "ok"})
        with patch("quickstats.routers.proxy.requests.post", return_value=backend) as post:
            res = client.post(
                "/api/upload-proxy",
                files={"file": ("game.mp4", b"video-bytes", "video/mp4")},
                data={"generate_video": "true"},
            )

        assert res.status_code == 200
        assert res.json() == {"job_id": "abc123", "status": "queued", "message": "ok"}
        args, kwargs = post.call_args
        assert args[0] == "http://upload-backend/api/upload"
        assert kwargs["data"] == {"generate_video": "true"}
        assert kwargs["timeout"] == 1800
        name, _fh, mime = kwargs["files"]["file"]
        assert name == "game.mp4"
        assert mime == "video/mp4"

    def test_backend_error_status_is_relayed(self, client):
        backend = _response(status=413, content=b"too big", reason="Payload Too Large")
        with patch("quickstats.routers.proxy.requests.post", return_value=backend):
            res = client.post("/api/upload-proxy", files={"file": ("g.mp4", b"x", "video/mp4")})

        assert res.status_code == 413
        assert res.json() == {"error": "Backend error: Payload Too Large - too big"}

    def test_transport_failure_is_500(self, client):
        with patch("quickstats.routers.proxy.requests.post", side_effect=requests.Timeout("timed out")):
            res = client.post("/api/upload-proxy", files={"file": ("g.mp4", b"x", "video/mp4")})

        assert res.status_code == 500
        assert res.json()["error"].startswith("Proxy error:")

    def test_missing_file_is_validation_error(self, client):
        res = client.post("/api/upload-proxy", data={"generate_video": "true"})

        assert res.status_code == 422
        assert res.json()["error"] == "Validation error"

    def test_cors_preflight(self, client):
        res = client.options(
            "/api/upload-proxy",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

        assert res.status_code == 200
        assert res.headers["access-control-allow-origin"] == "*"


class TestStatusProxy:
    def test_relays_payload(self, client):
        payload = {"job_id": "abc123", "status": "processing"}
        with patch("quickstats.routers.proxy.requests.get", return_value=_response(body=payload)) as get:
            res = client.get("/api/status-proxy/abc123")

        assert res.status_code == 200
        assert res.json() == payload
        get.assert_called_once_with("http://status-backend/api/status/abc123", timeout=15)

    def test_404_is_relayed(self, client):
        backend = _response(status=404, content=b'{"detail":"Job not found"}', reason="Not Found")
        with patch("quickstats.routers.proxy.requests.get", return_value=backend):
            res = client.get("/api/status-proxy/gone")

        assert res.status_code == 404
        assert "Not Found" in res.json()["error"]

    def test_connection_error_is_500(self, client):
        with patch("quickstats.routers.proxy.requests.get", side_effect=requests.ConnectionError("refused")):
            res = client.get("/api/status-proxy/abc")

        assert res.status_code == 500
        assert res.json()["error"].startswith("Status proxy error:")

    def test_job_id_is_escaped(self, client):
        with patch("quickstats.routers.proxy.requests.get", return_value=_response(body={})) as get:
            client.get("/api/status-proxy/a%20b")

        assert get.call_args[0][0] == "http://status-backend/api/status/a%20b"


class TestDownloadProxy:
    def test_streams_video_as_attachment(self, client):
        backend = _response(content=b"mp4-bytes", headers={"Content-Length": "9"})
        with patch("quickstats.routers.proxy.requests.get", return_value=backend) as get:
            res = client.get("/api/download-proxy/abc123")

        assert res.status_code == 200
        assert res.content == b"mp4-bytes"
        assert res.headers["content-type"] == "video/mp4"
        assert res.headers["content-disposition"] == 'attachment; filename="processed_video_abc123.mp4"'
        assert res.headers["content-length"] == "9"
        args, kwargs = get.call_args
        assert args[0] == "http://download-backend/api/download/abc123"
        assert kwargs == {"timeout": 900, "stream": True}

    def test_encoded_length_is_not_forwarded(self, client):
        # body as iter_content yields it after decoding; the backend length covers the gzip bytes
        backend = _response(
            content=b"decoded-mp4-bytes",
            headers={"Content-Length": "4", "Content-Encoding": "gzip"},
        )
        with patch("quickstats.routers.proxy.requests.get", return_value=backend):
            res = client.get("/api/download-proxy/abc123")

        assert res.status_code == 200
        assert res.content == b"decoded-mp4-bytes"
        assert res.headers.get("content-length") != "4"

    def test_backend_error_is_relayed(self, client):
        backend = _response(status=404, content=b"no video", reason="Not Found")
        with patch("quickstats.routers.proxy.requests.get", return_value=backend):
            res = client.get("/api/download-proxy/abc123")

        assert res.status_code == 404
        assert res.json() == {"error": "Backend download error: Not Found - no video"}
