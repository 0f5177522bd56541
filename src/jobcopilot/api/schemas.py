from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    company: str
    location: str
    status: str


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None


class ApplicationStepResponse(BaseModel):
    id: int
    application_id: int
    step_type: str
    description: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApplicationDetailResponse(ApplicationResponse):
    step_count: int = 0
    last_step_type: str | None = None


class AuditEntryResponse(BaseModel):
    id: int
    timestamp: datetime
    action_type: str
    entity_type: str
    entity_id: int | None
    user_confirmed: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
