from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from jobcopilot.api.deps import get_db
from jobcopilot.api.schemas import (
    ApplicationDetailResponse,
    ApplicationResponse,
    ApplicationStepResponse,
    AuditEntryResponse,
    JobResponse,
)
from jobcopilot.config import get_settings
from jobcopilot.db.repositories import Repository

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/jobs", response_model=list[JobResponse])
def list_jobs(
    status: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[JobResponse]:
    rows = Repository(db).list_jobs(limit=limit, status=status)
    return [JobResponse.model_validate(row) for row in rows]


@router.get("/applications", response_model=list[ApplicationResponse])
def list_applications(
    status: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[ApplicationResponse]:
    rows = Repository(db).list_applications(status=status, limit=limit)
    return [ApplicationResponse.model_validate(row) for row in rows]


@router.get("/applications/stale", response_model=list[ApplicationResponse])
def list_stale_applications(
    minutes: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> list[ApplicationResponse]:
    threshold = minutes if minutes is not None else get_settings().stale_run_threshold_min
    rows = Repository(db).list_stale_applications(timedelta(minutes=threshold))
    return [ApplicationResponse.model_validate(row) for row in rows]


@router.get("/applications/{application_id}", response_model=ApplicationDetailResponse)
def get_application(application_id: int, db: Session = Depends(get_db)) -> ApplicationDetailResponse:
    repo = Repository(db)
    application = repo.get_application(application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")

    steps = repo.list_application_steps(application_id)
    base = ApplicationResponse.model_validate(application)
    return ApplicationDetailResponse(
        **base.model_dump(),
        step_count=len(steps),
        last_step_type=steps[-1].step_type if steps else None,
    )


@router.get("/applications/{application_id}/steps", response_model=list[ApplicationStepResponse])
def get_application_steps(
    application_id: int,
    after_id: int = Query(0, ge=0, description="Only return steps with a larger id, for polling"),
    db: Session = Depends(get_db),
) -> list[ApplicationStepResponse]:
    repo = Repository(db)
    if repo.get_application(application_id) is None:
        raise HTTPException(status_code=404, detail="Application not found")

    return [
        ApplicationStepResponse(
            id=row.id,
            application_id=row.application_id,
            step_type=row.step_type,
            description=row.description,
            timestamp=row.timestamp,
            metadata=row.metadata_json,
        )
        for row in repo.list_application_steps(application_id)
        if row.id > after_id
    ]


@router.get("/audit", response_model=list[AuditEntryResponse])
def list_audit_entries(
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[AuditEntryResponse]:
    rows = Repository(db).list_audit_entries(entity_type=entity_type, entity_id=entity_id, limit=limit)
    return [
        AuditEntryResponse(
            id=row.id,
            timestamp=row.timestamp,
            action_type=row.action_type,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            user_confirmed=row.user_confirmed,
            metadata=row.metadata_json,
        )
        for row in rows
    ]
