from __future__ import annotations

import logging
import shutil
import subprocess
import sys

from jobcopilot.config import Settings
from jobcopilot.types import HumanStepCategory

logger = logging.getLogger(__name__)

_STEP_TITLES: dict[str, str] = {
    "captcha": "CAPTCHA Detected",
    "two_factor": "Verification Required",
    "file_upload": "File Upload Needed",
    "consent": "Consent Required",
}

_STEP_INSTRUCTIONS: dict[str, str] = {
    "captcha": "Please solve the CAPTCHA in the browser window",
    "two_factor": "Please enter your verification code in the browser",
    "file_upload": "Please upload the required file in the browser",
    "consent": "Please review and check the consent boxes",
}


def _applescript_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopNotifier:
    """Best-effort desktop alerts. Nothing here is allowed to raise."""

    def __init__(self, settings: Settings, *, timeout_sec: float = 5.0):
        self.enabled = settings.notifications_enabled
        self.sound = settings.notification_sound
        self.timeout_sec = timeout_sec

    def notify(self, title: str, message: str, play_sound: bool = True) -> bool:
        if not self.enabled:
            logger.debug("Notifications disabled, skipping notification title=%s", title)
            return False

        try:
            command = self._command(title, message, play_sound and self.sound)
            if command is None:
                logger.debug("No desktop notification backend on platform=%s", sys.platform)
                return False
            subprocess.run(command, check=True, capture_output=True, timeout=self.timeout_sec)
        except Exception as exc:
            logger.warning("Failed to send desktop notification title=%s: %s", title, exc)
            return False

        logger.info("Desktop notification sent title=%s", title)
        return True

    def notify_human_step(self, category: HumanStepCategory, description: str) -> bool:
        title = _STEP_TITLES.get(category, "Action Required")
        instruction = _STEP_INSTRUCTIONS.get(category, "Please complete the required action in the browser")
        return self.notify(title, f"{description}\n\n{instruction}", play_sound=True)

    def notify_progress(self, job_title: str, company: str, status: str) -> bool:
        return self.notify("Application Progress", f"{job_title} at {company}\nStatus: {status}", play_sound=False)

    def notify_complete(self, job_title: str, company: str, success: bool) -> bool:
        title = "Application Complete" if success else "Application Failed"
        return self.notify(title, f"{job_title} at {company}", play_sound=True)

    @staticmethod
    def _command(title: str, message: str, play_sound: bool) -> list[str] | None:
        if sys.platform == "darwin" and shutil.which("osascript"):
            script = f"display notification {_applescript_quote(message)} with title {_applescript_quote(title)}"
            if play_sound:
                script += ' sound name "default"'
            return ["osascript", "-e", script]

        if sys.platform.startswith("linux") and shutil.which("notify-send"):
            urgency = "critical" if play_sound else "normal"
            return ["notify-send", "--app-name=jobcopilot", f"--urgency={urgency}", title, message]

        return None
