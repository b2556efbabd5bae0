# quickstats/services/compression.py
from pathlib import Path
import logging
import uuid

import ffmpeg

from quickstats.core.errors import CompressionError

log = logging.getLogger(__name__)

DEFAULT_QUALITY = 0.7
DEFAULT_MAX_RESOLUTION = 1280

# libx264 CRF range we map quality onto: 1.0 -> 18 (near lossless), 0.1 -> 33
_CRF_BEST = 18
_CRF_WORST = 35


def quality_to_crf(quality: float) -> int:
    q = max(0.1, min(1.0, float(quality)))
    return round(_CRF_WORST - q * (_CRF_WORST - _CRF_BEST))


def probe_duration_seconds(path: str | Path) -> float:
    try:
        info = ffmpeg.probe(str(path))
        return float(info.get("format", {}).get("duration") or 0.0)
    except (ffmpeg.Error, OSError, ValueError):
        return 0.0


def compress_video(
    src: str | Path,
    out_dir: str | Path,
    quality: float = DEFAULT_QUALITY,
    max_resolution: int = DEFAULT_MAX_RESOLUTION,
) -> Path:
    """
    Re-encode `src` as H.264/AAC mp4, downscaled so the width is at most
    `max_resolution` (aspect kept, even height). Raises CompressionError and
    leaves no partial output behind on failure.
    """
    src = Path(src)
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / f"{src.stem}.{uuid.uuid4().hex[:8]}.compressed.mp4"

    crf = quality_to_crf(quality)
    try:
        (
            ffmpeg
            .input(str(src))
            .output(
                str(out),
                vf=f"scale='min({int(max_resolution)},iw)':-2",
                vcodec="libx264",
                preset="veryfast",
                crf=crf,
                acodec="aac",
                movflags="+faststart",
                loglevel="error",
            )
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        out.unlink(missing_ok=True)
        stderr = (e.stderr or b"").decode(errors="replace")[:300]
        raise CompressionError(f"ffmpeg failed: {stderr}") from e
    except OSError as e:  # ffmpeg binary missing
        out.unlink(missing_ok=True)
        raise CompressionError(str(e)) from e

    if not out.exists() or out.stat().st_size == 0:
        out.unlink(missing_ok=True)
        raise CompressionError("ffmpeg produced no output")

    log.info("compressed %s -> %s (crf=%s, max_res=%s)", src.name, out.name, crf, max_resolution)
    return out
