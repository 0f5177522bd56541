from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from jobcopilot.browser.session import PageSession
from jobcopilot.types import DetectionResult

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 2000
DEFAULT_TIMEOUT_MS = 5 * 60 * 1000


class Detector(Protocol):
    def detect(self, page: PageSession) -> DetectionResult: ...


class ResolutionWaiter:
    """Blocks until a detected human step clears or the deadline passes.

    A different category, or no detection at all, counts as resolved. Sleeps
    go through the page session and are clipped so the wait never runs past
    the deadline; the page is checked one last time when the deadline hits.
    """

    def __init__(
        self,
        detector: Detector,
        *,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        self.detector = detector
        self.poll_interval_ms = poll_interval_ms
        self.timeout_ms = timeout_ms
        self.clock = clock

    def wait(self, page: PageSession, detection: DetectionResult, timeout_ms: int | None = None) -> bool:
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        logger.info(
            "Waiting for human step resolution category=%s timeout_ms=%s",
            detection.category,
            timeout_ms,
        )

        deadline = self.clock() + timeout_ms / 1000
        polls = 0
        while True:
            current = self.detector.detect(page)
            polls += 1
            if not current.detected or current.category != detection.category:
                logger.info(
                    "Human step resolved category=%s polls=%s now=%s",
                    detection.category,
                    polls,
                    current.category,
                )
                return True

            remaining_ms = (deadline - self.clock()) * 1000
            if remaining_ms <= 0:
                logger.warning(
                    "Timed out waiting for human step category=%s polls=%s",
                    detection.category,
                    polls,
                )
                return False

            page.wait_ms(int(min(self.poll_interval_ms, remaining_ms)) or 1)
