from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import typer
from sqlalchemy.orm import Session

from jobcopilot.browser.detector import HumanStepDetector
from jobcopilot.browser.domain_adapters import detect_adapter
from jobcopilot.browser.notifier import DesktopNotifier
from jobcopilot.browser.session import PageSession
from jobcopilot.browser.waiter import Detector, ResolutionWaiter
from jobcopilot.config import Settings, get_settings
from jobcopilot.core.audit import AuditLog
from jobcopilot.db.repositories import Repository
from jobcopilot.errors import WorkflowStateError
from jobcopilot.types import (
    TERMINAL_APPLICATION_STATUSES,
    ApplicationContext,
    DetectionResult,
    StepType,
    WorkflowResult,
    WorkflowState,
)

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[str, frozenset[str]] = {
    "not_started": frozenset({"navigating", "failed"}),
    "navigating": frozenset({"monitoring", "failed"}),
    "monitoring": frozenset({"paused", "completed", "failed"}),
    "paused": frozenset({"monitoring", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}

_GUIDANCE: dict[str, tuple[str, ...]] = {
    "captcha": (
        "CAPTCHA Detected",
        "Please solve the CAPTCHA in the browser window",
        "The tool will automatically resume when complete",
    ),
    "two_factor": (
        "Verification Code Required",
        "Please enter your 2FA/verification code in the browser",
        "Check your phone/email for the code",
    ),
    "file_upload": (
        "File Upload Required",
        "Please upload the requested file (resume/CV/document)",
        "Use the file picker in the browser window",
    ),
    "consent": (
        "Consent Form",
        "Please review and check the required boxes",
        "Read the terms carefully before agreeing",
    ),
}


class ApplicationWorkflow:
    """Monitors one application page, pausing whenever a person has to act.

    The workflow never fills or submits the form. It navigates, watches for
    human steps, waits for them to clear and records every transition as an
    application step. ``run`` always returns a ``WorkflowResult``.
    """

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        detector: Detector | None = None,
        waiter: ResolutionWaiter | None = None,
        notifier: DesktopNotifier | None = None,
        clock: Callable[[], float] = time.monotonic,
        echo: Callable[..., Any] = typer.secho,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.audit = AuditLog(session)
        self.detector = detector or HumanStepDetector()
        self.waiter = waiter or ResolutionWaiter(
            self.detector,
            poll_interval_ms=self.settings.poll_interval_ms,
            timeout_ms=self.settings.human_step_timeout_ms,
            clock=clock,
        )
        self.notifier = notifier or DesktopNotifier(self.settings)
        self.echo = echo
        self.state: WorkflowState = "not_started"

    def run(self, page: PageSession, context: ApplicationContext) -> WorkflowResult:
        try:
            application = self.repo.get_application(context.application_id)
        except Exception as exc:
            logger.exception("Failed to load application application_id=%s", context.application_id)
            self.session.rollback()
            return WorkflowResult(
                success=False,
                message=f"could not load application {context.application_id}: {exc}",
            )
        if application is None:
            return WorkflowResult(success=False, message=f"application {context.application_id} not found")
        if application.status in TERMINAL_APPLICATION_STATUSES:
            return WorkflowResult(
                success=False,
                message=f"application {application.id} is already {application.status}",
                status=application.status,
            )

        self.state = "not_started"
        logger.info(
            "Starting application workflow application_id=%s job_id=%s",
            context.application_id,
            context.job_id,
        )
        try:
            return self._run(page, context)
        except Exception as exc:
            logger.exception("Application workflow error application_id=%s", context.application_id)
            return self._fail(context, str(exc) or exc.__class__.__name__, reason="exception")

    def _run(self, page: PageSession, context: ApplicationContext) -> WorkflowResult:
        application_id = context.application_id
        adapter = detect_adapter(context.job_url)

        self._transition("navigating")
        self.repo.update_application_status(application_id, "in_progress")
        self._step(
            application_id,
            "navigation",
            f"Navigating to {context.job_url}",
            {"url": context.job_url, "adapter": adapter.name},
        )

        self.echo("\nOpening application page...\n", fg="blue")
        page.navigate(context.job_url)
        self._notify(self.notifier.notify_progress, context.job_title, context.job_company, "Page loaded")

        self.echo("Waiting for page to load completely...", fg="bright_black")
        page.wait_ms(self.settings.settle_delay_ms)
        self._transition("monitoring")

        max_cycles = self.settings.max_monitor_cycles
        cycles = 0
        for cycle in range(1, max_cycles + 1):
            cycles = cycle
            self.echo(f"\n[Cycle {cycle}] Checking for human steps...", fg="bright_black")
            detection = self.detector.detect(page)

            if not detection.detected:
                self.echo("   No human steps detected, the application can continue", fg="bright_black")
                self.echo("\nReady for the next action: complete the form in the browser.", fg="blue")
                break

            if not self._handle_human_step(page, context, detection, cycle):
                return WorkflowResult(
                    success=False,
                    message=f"Timeout waiting for {detection.category} resolution",
                    status="paused",
                    recoverable=True,
                    cycles=cycle,
                )
        else:
            return self._fail(
                context,
                f"Exceeded {max_cycles} monitoring cycles without the page settling",
                reason="cycle_limit",
                cycles=cycles,
            )

        self._step(application_id, "submission", "Application workflow completed (manual submission required)")
        self._transition("completed")
        self.repo.update_application_status(application_id, "completed")
        self._notify(self.notifier.notify_complete, context.job_title, context.job_company, True)
        self.echo("\nApplication workflow monitoring complete\n", fg="green", bold=True)

        return WorkflowResult(
            success=True,
            message="Application workflow completed successfully",
            status="completed",
            cycles=cycles,
        )

    def _handle_human_step(
        self,
        page: PageSession,
        context: ApplicationContext,
        detection: DetectionResult,
        cycle: int,
    ) -> bool:
        application_id = context.application_id
        category = detection.category

        self.echo(f"\nHuman step detected: {category.upper()}", fg="yellow", bold=True)
        self.echo(f"   {detection.description}\n", fg="yellow")

        self._step(
            application_id,
            "human_step_detected",
            f"{category}: {detection.description}",
            {"category": category, "selector": detection.matched_selector, "cycle": cycle},
        )
        self._transition("paused")
        self.repo.update_application_status(application_id, "paused")
        self._notify(self.notifier.notify_human_step, category, detection.description)
        self.audit.record(
            "human_step_pause",
            "application",
            application_id,
            False,
            {"step_type": category, "description": detection.description},
        )
        self._show_guidance(detection)

        self.echo("\nWaiting for you to complete the step...\n", fg="blue")
        if not self.waiter.wait(page, detection):
            self.echo(f"\nTimeout waiting for {category} resolution\n", fg="red")
            return False

        self.echo("\nHuman step resolved! Continuing...\n", fg="green")
        self._step(application_id, "human_step_resolved", f"{category} resolved", {"category": category})
        self._transition("monitoring")
        self.repo.update_application_status(application_id, "in_progress")
        self.audit.record("human_step_resume", "application", application_id, True, {"step_type": category})

        page.wait_ms(self.settings.stabilization_delay_ms)
        return True

    def _fail(
        self,
        context: ApplicationContext,
        message: str,
        *,
        reason: str,
        cycles: int = 0,
    ) -> WorkflowResult:
        self.state = "failed"
        # The failure may have come from a commit; clear it before recording.
        self.session.rollback()
        try:
            self._step(context.application_id, "error", f"Error: {message}", {"reason": reason})
            self.repo.update_application_status(context.application_id, "failed")
        except Exception:
            logger.exception("Failed to record workflow failure application_id=%s", context.application_id)
            self.session.rollback()

        self._notify(self.notifier.notify_complete, context.job_title, context.job_company, False)
        self.echo(f"\nApplication workflow failed: {message}\n", fg="red", bold=True)
        return WorkflowResult(success=False, message=message, status="failed", cycles=cycles)

    def _transition(self, target: WorkflowState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise WorkflowStateError(f"illegal workflow transition {self.state} -> {target}")
        logger.debug("Workflow state %s -> %s", self.state, target)
        self.state = target

    def _step(
        self,
        application_id: int,
        step_type: StepType,
        description: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        step = self.repo.add_application_step(application_id, step_type, description, metadata)
        logger.info("Recorded step application_id=%s step_id=%s type=%s", application_id, step.id, step_type)

    def _notify(self, send: Callable[..., Any], *args: Any) -> None:
        try:
            send(*args)
        except Exception as exc:
            logger.warning("Notification failed: %s", exc)

    def _show_guidance(self, detection: DetectionResult) -> None:
        self.echo("+-------------------------------------------------------------+", fg="yellow", bold=True)
        self.echo("|                      ACTION REQUIRED                        |", fg="yellow", bold=True)
        self.echo("+-------------------------------------------------------------+\n", fg="yellow", bold=True)

        headline, *lines = _GUIDANCE.get(
            detection.category,
            (detection.description, "Please complete the required action in the browser"),
        )
        self.echo(f"  {headline}", fg="white")
        for line in lines:
            self.echo(f"     {line}", fg="bright_black")
        self.echo("\n  The tool is monitoring for completion and will resume automatically\n", fg="blue")
