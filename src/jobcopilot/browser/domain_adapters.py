from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True, slots=True)
class DomainAdapter:
    name: str
    hint: str


def detect_adapter(url: str) -> DomainAdapter:
    host = urlparse(url).netloc.lower()

    if "greenhouse" in host:
        return DomainAdapter(
            name="greenhouse",
            hint=(
                "Greenhouse forms put the resume upload near the top and an EEOC voluntary "
                "self-identification section at the end; expect upload and consent pauses."
            ),
        )

    if "lever" in host:
        return DomainAdapter(
            name="lever",
            hint=(
                "Lever renders resume upload and profile fields on one page; hCaptcha may appear "
                "when the form is submitted."
            ),
        )

    if "workable" in host:
        return DomainAdapter(
            name="workable",
            hint="Workable may ask for a privacy policy consent checkbox before screening questions.",
        )

    if "smartrecruiters" in host:
        return DomainAdapter(
            name="smartrecruiters",
            hint=(
                "SmartRecruiters can require account creation, which often triggers an emailed "
                "verification code."
            ),
        )

    if "linkedin.com" in host:
        return DomainAdapter(
            name="linkedin",
            hint=(
                "LinkedIn sessions may be challenged with a security check or two-step "
                "verification before Easy Apply opens."
            ),
        )

    return DomainAdapter(
        name="generic",
        hint="Watch for CAPTCHA, verification codes, file uploads and consent checkboxes.",
    )
