# quickstats/config.py
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
import os
from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

DEFAULT_BACKEND_URL = "http://localhost:8000"


def load_env_files(root: Path = ROOT) -> None:
    # Load in ascending precedence; later overrides earlier
    load_dotenv(root / ".env")
    load_dotenv(root / ".env.local", override=True)
    load_dotenv(root / "quickstats" / ".env", override=True)
    load_dotenv(root / "quickstats" / ".env.local", override=True)


def _url(value: str | None, fallback: str) -> str:
    return (value or fallback).strip().rstrip("/")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    # Server
    PORT: int = 8000
    ALLOWED_ORIGINS: list[str] = field(default_factory=lambda: ["*"])
    DATA_DIR: str = str(ROOT / "data")

    # Backend gateway; each proxy route can point at its own deployment
    BACKEND_URL: str = DEFAULT_BACKEND_URL
    UPLOAD_BACKEND_URL: str = DEFAULT_BACKEND_URL
    STATUS_BACKEND_URL: str = DEFAULT_BACKEND_URL
    DOWNLOAD_BACKEND_URL: str = DEFAULT_BACKEND_URL

    # Deadlines (seconds)
    UPLOAD_TIMEOUT_S: float = 30 * 60
    STATUS_TIMEOUT_S: float = 30
    DOWNLOAD_TIMEOUT_S: float = 30 * 60

    # Client side
    PROXY_URL: str = DEFAULT_BACKEND_URL
    POLL_INTERVAL_S: float = 2.0
    POLL_MAX_RETRIES: int = 3
    COMPRESSION_THRESHOLD_MB: int = 20

    @property
    def compression_threshold_bytes(self) -> int:
        return self.COMPRESSION_THRESHOLD_MB * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        backend = _url(os.getenv("BACKEND_URL"), DEFAULT_BACKEND_URL)
        return cls(
            PORT=_env_int("PORT", 8000),
            ALLOWED_ORIGINS=[
                o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
            ],
            DATA_DIR=os.getenv("DATA_DIR", str(ROOT / "data")),
            BACKEND_URL=backend,
            UPLOAD_BACKEND_URL=_url(os.getenv("UPLOAD_BACKEND_URL"), backend),
            STATUS_BACKEND_URL=_url(os.getenv("STATUS_BACKEND_URL"), backend),
            DOWNLOAD_BACKEND_URL=_url(os.getenv("DOWNLOAD_BACKEND_URL"), backend),
            UPLOAD_TIMEOUT_S=_env_float("UPLOAD_TIMEOUT_S", 30 * 60),
            STATUS_TIMEOUT_S=_env_float("STATUS_TIMEOUT_S", 30),
            DOWNLOAD_TIMEOUT_S=_env_float("DOWNLOAD_TIMEOUT_S", 30 * 60),
            PROXY_URL=_url(os.getenv("PROXY_URL"), DEFAULT_BACKEND_URL),
            POLL_INTERVAL_S=_env_float("POLL_INTERVAL_S", 2.0),
            POLL_MAX_RETRIES=_env_int("POLL_MAX_RETRIES", 3),
            COMPRESSION_THRESHOLD_MB=_env_int("COMPRESSION_THRESHOLD_MB", 20),
        )

    def to_public(self) -> dict:
        """Non-secret view used by /health/env."""
        return {
            "PORT": self.PORT,
            "ALLOWED_ORIGINS": list(self.ALLOWED_ORIGINS),
            "DATA_DIR": str(Path(self.DATA_DIR).resolve()),
            "backend": {
                "upload": self.UPLOAD_BACKEND_URL,
                "status": self.STATUS_BACKEND_URL,
                "download": self.DOWNLOAD_BACKEND_URL,
            },
            "timeouts_s": {
                "upload": self.UPLOAD_TIMEOUT_S,
                "status": self.STATUS_TIMEOUT_S,
                "download": self.DOWNLOAD_TIMEOUT_S,
            },
        }


@lru_cache
def get_settings() -> Settings:
    load_env_files()
    return Settings.from_env()
