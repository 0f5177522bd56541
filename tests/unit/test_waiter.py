from __future__ import annotations

import pytest

from jobcopilot.browser.detector import HumanStepDetector
from jobcopilot.browser.waiter import ResolutionWaiter
from jobcopilot.types import DetectionResult

CAPTCHA = DetectionResult(True, "captcha", "CAPTCHA verification required", 'iframe[src*="recaptcha"]')
TWO_FACTOR = DetectionResult(True, "two_factor", "Two-factor authentication or verification code required")


class SequenceDetector:
    """Returns the queued results in order, repeating the last one forever."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def detect(self, page) -> DetectionResult:
        self.calls += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


def test_resolves_after_the_step_clears(scripted_page) -> None:
    page = scripted_page([(0, {})])
    detector = SequenceDetector([CAPTCHA, CAPTCHA, CAPTCHA, DetectionResult.nothing()])
    waiter = ResolutionWaiter(detector, poll_interval_ms=2000, timeout_ms=60_000, clock=page.clock)

    assert waiter.wait(page, CAPTCHA) is True
    assert detector.calls == 4
    assert page.now_ms == 6000


def test_times_out_exactly_at_the_deadline(scripted_page) -> None:
    page = scripted_page([(0, {})])
    detector = SequenceDetector([CAPTCHA])
    waiter = ResolutionWaiter(detector, poll_interval_ms=2000, timeout_ms=300_000, clock=page.clock)

    assert waiter.wait(page, CAPTCHA, timeout_ms=5000) is False
    assert page.waits == [2000, 2000, 1000]
    assert page.now_ms == 5000
    # Checked at 0s, 2s, 4s and once more at the deadline.
    assert detector.calls == 4


def test_different_category_counts_as_resolved(scripted_page) -> None:
    page = scripted_page([(0, {})])
    waiter = ResolutionWaiter(SequenceDetector([TWO_FACTOR]), clock=page.clock)

    assert waiter.wait(page, CAPTCHA) is True
    assert page.waits == []


def test_zero_timeout_checks_once(scripted_page) -> None:
    page = scripted_page([(0, {})])
    detector = SequenceDetector([CAPTCHA])
    waiter = ResolutionWaiter(detector, clock=page.clock)

    assert waiter.wait(page, CAPTCHA, timeout_ms=0) is False
    assert detector.calls == 1
    assert page.waits == []


def test_waits_on_the_live_page(scripted_page) -> None:
    page = scripted_page([(0, {'iframe[src*="hcaptcha"]': 1}), (4000, {})])
    detector = HumanStepDetector()
    waiter = ResolutionWaiter(detector, poll_interval_ms=1000, timeout_ms=10_000, clock=page.clock)

    detection = detector.detect(page)
    assert detection.category == "captcha"
    assert waiter.wait(page, detection) is True
    assert page.now_ms == 4000


def test_rejects_non_positive_poll_interval() -> None:
    with pytest.raises(ValueError):
        ResolutionWaiter(SequenceDetector([CAPTCHA]), poll_interval_ms=0)
