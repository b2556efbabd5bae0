# quickstats/cli.py
from __future__ import annotations

from dataclasses import replace
import argparse
import json
import logging
import sys

from quickstats.config import get_settings
from quickstats.core.errors import TransportError
from quickstats.core.progress import AnalysisStage
from quickstats.middleware_logging import configure_logging
from quickstats.services.analysis import AnalysisSession
from quickstats.services.basketball_api import BasketballApiClient, UploadOptions
from quickstats.steps.statistics import build_report

log = logging.getLogger("quickstats.cli")


def _analyze(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.proxy_url:
        settings = replace(settings, PROXY_URL=args.proxy_url.rstrip("/"))

    client = BasketballApiClient.from_settings(settings)
    session = AnalysisSession(
        client,
        poll_interval=settings.POLL_INTERVAL_S,
        poll_max_retries=settings.POLL_MAX_RETRIES,
        on_progress=lambda p: print(f"[{p.stage.value:>12}] {p.progress:5.1f}% {p.message}", file=sys.stderr),
    )

    try:
        video = session.select_video(args.video)
    except OSError as e:
        print(f"Cannot read video: {e}", file=sys.stderr)
        return 1
    log.info("selected %s (%d bytes, %.1fs)", video.name, video.size, video.duration)

    session.start_analysis(
        UploadOptions(
            compress=not args.no_compress,
            quality=args.quality,
            max_resolution=args.max_resolution,
        )
    )
    if not session.wait(args.timeout):
        session.cancel()
        print(f"Timed out after {args.timeout}s waiting for job {session.job_id}", file=sys.stderr)
        return 1

    if session.progress.stage is not AnalysisStage.completed or session.game_data is None:
        print(session.progress.message or "Analysis failed", file=sys.stderr)
        return 1

    if args.download:
        try:
            out = session.download_processed_video(args.download)
        except (TransportError, OSError) as e:
            print(str(e), file=sys.stderr)
            return 1
        print(f"Processed video saved to {out}", file=sys.stderr)

    payload = {
        "job_id": session.job_id,
        "game": session.game_data.to_api(),
        "report": build_report(session.game_data),
    }
    print(json.dumps(payload, indent=2))
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    port = args.port or get_settings().PORT
    uvicorn.run("quickstats.main:app", host=args.host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quickstats", description="Basketball Quick Stats client")
    parser.add_argument("--debug", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    a = sub.add_parser("analyze", help="upload a video and wait for score detection")
    a.add_argument("video")
    a.add_argument("--no-compress", action="store_true", help="upload the file as-is")
    a.add_argument("--quality", type=float, default=0.7, help="compression quality 0.1-1.0")
    a.add_argument("--max-resolution", type=int, default=1280)
    a.add_argument("--download", metavar="OUT", help="also save the processed video here")
    a.add_argument("--proxy-url", help="override PROXY_URL")
    a.add_argument("--timeout", type=float, default=None, help="give up after this many seconds")
    a.set_defaults(func=_analyze)

    s = sub.add_parser("serve", help="run the proxy app")
    s.add_argument("--host", default="0.0.0.0")
    s.add_argument("--port", type=int, default=None)
    s.set_defaults(func=_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
