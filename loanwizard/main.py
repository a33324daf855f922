"""Entry point: logging setup and wizard construction.

Usage:
    from loanwizard.main import configure_logging, create_wizard

    configure_logging()
    async with create_wizard(seed) as wizard:
        ...
"""

from __future__ import annotations

import logging
import sys

import structlog

from loanwizard.api.client import LoanApi, LoanApiClient
from loanwizard.capture.provider import CaptureProvider
from loanwizard.config import settings
from loanwizard.schemas.seed import DraftSeed
from loanwizard.wizard.engine import ApplicationWizard

logger = logging.getLogger(__name__)

# ── Logging setup ────────────────────────────────────────────────────


def configure_logging(level: str | None = None) -> None:
    """Configure stdlib logging and structlog once per process."""
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


# ── Wizard factory ───────────────────────────────────────────────────


def create_wizard(
    seed: DraftSeed | None = None,
    *,
    api: LoanApi | None = None,
    provider: CaptureProvider | None = None,
) -> ApplicationWizard:
    """Build a wizard wired to the configured API and the local webcam."""
    if api is None:
        api = LoanApiClient()
    if provider is None:
        # cv2 is heavy; only import it when a real camera is needed
        from loanwizard.capture.opencv import OpenCVCaptureProvider

        provider = OpenCVCaptureProvider(settings.capture.camera_device_index)

    logger.info("Creating wizard (env=%s, api=%s)", settings.environment, settings.api.api_base_url)
    return ApplicationWizard(api, provider, seed)
