"""Error reporting setup."""

from __future__ import annotations

import logging
import os
import subprocess

import sentry_sdk
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from .config import Settings

logger = logging.getLogger(__name__)

def get_release() -> str:
    """Release identifier for error reports: ``GIT_SHA`` or the local short SHA."""
    env_sha = os.getenv("GIT_SHA", "").strip()
    if env_sha:
        return env_sha
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def init_sentry(settings: Settings) -> bool:
    """Initialise Sentry when a DSN is configured. Returns True when active."""
    if not settings.sentry_dsn:
        logger.debug("Sentry disabled (no DSN configured)")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=get_release(),
        integrations=[
            HttpxIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        traces_sample_rate=0.1,
    )
    logger.info("Sentry initialized for environment: %s", settings.environment)
    return True
