# quickstats/routers/deps.py
from fastapi import Request

from quickstats.config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings injected into the app at startup (see create_app)."""
    return request.app.state.settings
