"""Tests for the command line front end."""

import json
from unittest.mock import MagicMock, patch

from quickstats import cli
from quickstats.config import Settings
from quickstats.core.models import UploadJob, UploadResponse


def test_parser_defaults():
    args = cli.build_parser().parse_args(["analyze", "game.mp4"])

    assert args.video == "game.mp4"
    assert args.no_compress is False
    assert args.quality == 0.7
    assert args.max_resolution == 1280


def test_analyze_prints_game_json(tmp_path, capsys):
    video = tmp_path / "game.mp4"
    video.write_bytes(b"\x00" * 10)
    api = MagicMock()
    api.upload_video.return_value = UploadResponse(job_id="abc123", status="queued")
    api.get_job_status_silent.return_value = UploadJob(
        job_id="abc123",
        status="completed",
        results={
            "video": {"fps": 30, "frames": 300},
            "scores": [{"frame": 90, "timestamp": 3.0, "confidence": 0.92, "mode": "nbaction_exact"}],
        },
    )

    with patch.object(cli, "get_settings", return_value=Settings()), \
         patch.object(cli.BasketballApiClient, "from_settings", return_value=api), \
         patch("quickstats.services.analysis.probe_duration_seconds", return_value=10.0):
        code = cli.main(["analyze", str(video), "--no-compress"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["job_id"] == "abc123"
    assert out["game"]["summary"]["team"]["points"] == 2
    assert out["report"]["total_scores"] == 1
    assert api.upload_video.call_args[0][1].compress is False


def test_analyze_returns_1_on_upload_failure(tmp_path, capsys):
    from quickstats.core.errors import TransportError

    video = tmp_path / "game.mp4"
    video.write_bytes(b"\x00" * 10)
    api = MagicMock()
    api.upload_video.side_effect = TransportError("Upload failed: Bad Gateway - down", 502)

    with patch.object(cli, "get_settings", return_value=Settings()), \
         patch.object(cli.BasketballApiClient, "from_settings", return_value=api), \
         patch("quickstats.services.analysis.probe_duration_seconds", return_value=0.0):
        code = cli.main(["analyze", str(video)])

    assert code == 1
    assert "Upload failed" in capsys.readouterr().err


def test_analyze_returns_1_for_missing_video(tmp_path, capsys):
    api = MagicMock()

    with patch.object(cli, "get_settings", return_value=Settings()), \
         patch.object(cli.BasketballApiClient, "from_settings", return_value=api):
        code = cli.main(["analyze", str(tmp_path / "missing.mp4")])

    assert code == 1
    assert "Cannot read video" in capsys.readouterr().err
    api.upload_video.assert_not_called()


def test_analyze_returns_1_when_download_is_gone(tmp_path, capsys):
    from quickstats.core.errors import JobNotFoundError, TransportError

    video = tmp_path / "game.mp4"
    video.write_bytes(b"\x00" * 10)
    api = MagicMock()
    api.upload_video.return_value = UploadResponse(job_id="abc123", status="queued")
    # job already purged: the first poll 404s and the session completes with placeholder results
    api.get_job_status_silent.return_value = None
    api.get_job_status.side_effect = JobNotFoundError("abc123")
    api.save_processed_video.side_effect = TransportError("Download failed: Not Found - gone", 404)

    with patch.object(cli, "get_settings", return_value=Settings(POLL_INTERVAL_S=0.01)), \
         patch.object(cli.BasketballApiClient, "from_settings", return_value=api), \
         patch("quickstats.services.analysis.probe_duration_seconds", return_value=0.0):
        code = cli.main(["analyze", str(video), "--download", str(tmp_path / "out.mp4"), "--timeout", "5"])

    assert code == 1
    captured = capsys.readouterr()
    assert "Download failed: Not Found - gone" in captured.err
    assert captured.out == ""
