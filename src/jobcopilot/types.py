from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel

HumanStepCategory = Literal["captcha", "two_factor", "file_upload", "consent", "none"]
ApplicationStatus = Literal["queued", "in_progress", "paused", "completed", "failed"]
JobStatus = Literal["new", "reviewed", "queued", "applied", "rejected", "archived"]
StepType = Literal[
    "navigation",
    "form_fill",
    "human_step_detected",
    "human_step_resolved",
    "draft_generated",
    "answer_inserted",
    "submission",
    "error",
]
AuditActionType = Literal[
    "job_sync",
    "job_queue",
    "draft_generate",
    "application_start",
    "human_step_pause",
    "human_step_resume",
    "answer_insert",
    "submission_confirm",
    "submission_cancel",
    "session_close",
    "profile_create",
    "profile_update",
    "profile_export",
]
AuditEntityType = Literal["job", "application", "source", "profile"]
WorkflowState = Literal["not_started", "navigating", "monitoring", "paused", "completed", "failed"]

APPLICATION_STATUSES: tuple[str, ...] = ("queued", "in_progress", "paused", "completed", "failed")
TERMINAL_APPLICATION_STATUSES: frozenset[str] = frozenset({"completed", "failed"})
JOB_STATUSES: tuple[str, ...] = ("new", "reviewed", "queued", "applied", "rejected", "archived")
STEP_TYPES: tuple[str, ...] = (
    "navigation",
    "form_fill",
    "human_step_detected",
    "human_step_resolved",
    "draft_generated",
    "answer_inserted",
    "submission",
    "error",
)


@dataclass(frozen=True, slots=True)
class DetectionResult:
    detected: bool
    category: HumanStepCategory
    description: str = ""
    matched_selector: str | None = None

    @classmethod
    def nothing(cls) -> DetectionResult:
        return cls(detected=False, category="none")


@dataclass(frozen=True, slots=True)
class ApplicationContext:
    application_id: int
    job_id: int
    job_url: str
    job_title: str = ""
    job_company: str = ""


class WorkflowResult(BaseModel):
    success: bool
    message: str
    status: ApplicationStatus | None = None
    recoverable: bool = False
    cycles: int = 0

