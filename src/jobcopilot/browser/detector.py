"""Human-step detection.

The policy is a fixed, ordered list of rules. Each rule names a category and
the selectors that reveal it; the first rule that matches wins, so CAPTCHA
outranks 2FA, which outranks file upload, which outranks consent.

Lookups favour availability over precision: a selector that cannot be
evaluated counts as absent rather than failing the whole scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from jobcopilot.browser.session import PageSession
from jobcopilot.errors import PageQueryError
from jobcopilot.types import DetectionResult, HumanStepCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Indicator:
    selector: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class HumanStepRule:
    category: HumanStepCategory
    description: str
    indicators: tuple[Indicator, ...]
    # Every gate must be present before indicators are considered.
    requires: tuple[str, ...] = ()

    def match(self, page: PageSession) -> Indicator | None:
        for gate in self.requires:
            if probe(page, gate) == 0:
                return None
        for indicator in self.indicators:
            if probe(page, indicator.selector) > 0:
                return indicator
        return None


def _indicators(*selectors: str) -> tuple[Indicator, ...]:
    return tuple(Indicator(selector) for selector in selectors)


CAPTCHA_RULE = HumanStepRule(
    category="captcha",
    description="CAPTCHA verification required",
    indicators=(
        Indicator('iframe[src*="recaptcha"]', "reCAPTCHA verification required"),
        Indicator('iframe[src*="hcaptcha"]', "hCaptcha verification required"),
        *_indicators(
            "text=I'm not a robot",
            "text=Verify you are human",
            "text=/verify (that )?you('| a)re (a )?human/i",
            "text=Complete the CAPTCHA",
            "text=Security check",
            '[class*="captcha" i]',
            '[id*="captcha" i]',
            '[name*="captcha" i]',
        ),
    ),
)

TWO_FACTOR_RULE = HumanStepRule(
    category="two_factor",
    description="Two-factor authentication or verification code required",
    indicators=_indicators(
        "text=verification code",
        "text=Enter the code",
        "text=Two-factor authentication",
        "text=2FA",
        "text=authenticator",
        "text=security code",
        'input[autocomplete*="one-time"]',
        'input[placeholder*="code" i]',
        'input[placeholder*="otp" i]',
    ),
)

FILE_UPLOAD_RULE = HumanStepRule(
    category="file_upload",
    description="File upload required (resume/CV or document)",
    requires=('input[type="file"]:visible',),
    indicators=_indicators(
        "text=Upload resume",
        "text=Upload CV",
        "text=Attach resume",
        "text=Attach CV",
        "text=Upload document",
        "text=Choose file",
    ),
)

CONSENT_RULE = HumanStepRule(
    category="consent",
    description="Consent or EEO form requires review and confirmation",
    requires=('input[type="checkbox"]:not(:checked)',),
    indicators=_indicators(
        "text=Equal Employment Opportunity",
        "text=EEO",
        "text=Voluntary Self-Identification",
        "text=Demographics",
        "text=I consent to",
        "text=I agree to",
        "text=Terms and Conditions",
        "text=Privacy Policy",
    ),
)

DEFAULT_RULES: tuple[HumanStepRule, ...] = (
    CAPTCHA_RULE,
    TWO_FACTOR_RULE,
    FILE_UPLOAD_RULE,
    CONSENT_RULE,
)


def probe(page: PageSession, selector: str) -> int:
    """Count matches for ``selector``; any lookup failure reads as zero."""
    try:
        return page.query_count(selector)
    except PageQueryError as exc:
        logger.debug("Selector lookup failed, treating as absent: %s", exc)
        return 0
    except Exception as exc:
        logger.warning("Unexpected error probing selector %r: %s", selector, exc)
        return 0


class HumanStepDetector:
    def __init__(self, rules: tuple[HumanStepRule, ...] = DEFAULT_RULES):
        self.rules = rules

    def detect(self, page: PageSession) -> DetectionResult:
        for rule in self.rules:
            indicator = rule.match(page)
            if indicator is None:
                continue

            description = indicator.description or rule.description
            logger.info("Human step detected category=%s selector=%s", rule.category, indicator.selector)
            return DetectionResult(
                detected=True,
                category=rule.category,
                description=description,
                matched_selector=indicator.selector,
            )

        return DetectionResult.nothing()
