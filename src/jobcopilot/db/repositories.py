from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from jobcopilot.db.models import ApplicationRun, ApplicationStep, AuditEntry, Job
from jobcopilot.types import APPLICATION_STATUSES, JOB_STATUSES, STEP_TYPES


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class Repository:
    def __init__(self, session: Session):
        self.session = session

    # Jobs

    def create_job(self, url: str, *, title: str = "", company: str = "", location: str = "") -> Job:
        job = Job(url=url, title=title, company=company, location=location, status="new")
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_job(self, job_id: int) -> Job | None:
        return self.session.get(Job, job_id)

    def list_jobs(self, limit: int = 50, status: str | None = None) -> list[Job]:
        statement = select(Job)
        if status is not None:
            statement = statement.where(Job.status == status)
        statement = statement.order_by(Job.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def update_job_status(self, job_id: int, status: str) -> Job:
        if status not in JOB_STATUSES:
            raise ValueError(f"unsupported job status '{status}'")
        job = self.session.get(Job, job_id)
        if not job:
            raise ValueError(f"job {job_id} not found")
        job.status = status
        self.session.commit()
        self.session.refresh(job)
        return job

    # Applications

    def create_application(self, job_id: int, notes: str | None = None) -> ApplicationRun:
        if not self.session.get(Job, job_id):
            raise ValueError(f"job {job_id} not found")
        application = ApplicationRun(job_id=job_id, status="queued", notes=notes)
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: int) -> ApplicationRun | None:
        return self.session.get(ApplicationRun, application_id)

    def get_application_by_job_id(self, job_id: int) -> ApplicationRun | None:
        statement = (
            select(ApplicationRun)
            .where(ApplicationRun.job_id == job_id)
            .order_by(ApplicationRun.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    def list_applications(self, *, status: str | None = None, limit: int = 50) -> list[ApplicationRun]:
        statement = select(ApplicationRun)
        if status is not None:
            statement = statement.where(ApplicationRun.status == status)
        statement = statement.order_by(ApplicationRun.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def update_application_status(self, application_id: int, status: str) -> ApplicationRun:
        """Set the status; ``started_at`` and ``completed_at`` are each stamped once."""
        if status not in APPLICATION_STATUSES:
            raise ValueError(f"unsupported application status '{status}'")

        application = self.session.get(ApplicationRun, application_id)
        if not application:
            raise ValueError(f"application {application_id} not found")

        application.status = status
        now = datetime.now(UTC)
        if status in {"in_progress", "paused"} and application.started_at is None:
            application.started_at = now
        if status in {"completed", "failed"} and application.completed_at is None:
            application.completed_at = now

        self.session.commit()
        self.session.refresh(application)
        return application

    def list_stale_applications(self, older_than: timedelta) -> list[ApplicationRun]:
        """Applications stuck in ``in_progress``/``paused`` with no step newer than the threshold."""
        cutoff = datetime.now(UTC) - older_than
        statement = (
            select(ApplicationRun)
            .where(ApplicationRun.status.in_(("in_progress", "paused")))
            .order_by(ApplicationRun.id.asc())
        )
        stale: list[ApplicationRun] = []
        for application in self.session.scalars(statement).all():
            last_step = self.get_last_application_step(application.id)
            if last_step is not None:
                last_seen = last_step.timestamp
            else:
                last_seen = application.started_at or application.created_at
            if _as_utc(last_seen) < cutoff:
                stale.append(application)
        return stale

    # Steps

    def add_application_step(
        self,
        application_id: int,
        step_type: str,
        description: str,
        metadata: dict | None = None,
    ) -> ApplicationStep:
        if step_type not in STEP_TYPES:
            raise ValueError(f"unsupported step type '{step_type}'")
        step = ApplicationStep(
            application_id=application_id,
            step_type=step_type,
            description=description,
            metadata_json=metadata or {},
        )
        self.session.add(step)
        self.session.commit()
        self.session.refresh(step)
        return step

    def list_application_steps(self, application_id: int) -> list[ApplicationStep]:
        statement = (
            select(ApplicationStep)
            .where(ApplicationStep.application_id == application_id)
            .order_by(ApplicationStep.id.asc())
        )
        return list(self.session.scalars(statement).all())

    def get_last_application_step(self, application_id: int) -> ApplicationStep | None:
        statement = (
            select(ApplicationStep)
            .where(ApplicationStep.application_id == application_id)
            .order_by(ApplicationStep.id.desc())
            .limit(1)
        )
        return self.session.scalar(statement)

    # Audit

    def add_audit_entry(
        self,
        *,
        action_type: str,
        entity_type: str,
        entity_id: int | None,
        user_confirmed: bool,
        metadata: dict | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_confirmed=user_confirmed,
            metadata_json=metadata or {},
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def list_audit_entries(
        self,
        *,
        entity_type: str | None = None,
        entity_id: int | None = None,
        limit: int = 100,
    ) -> list[AuditEntry]:
        conditions = []
        if entity_type is not None:
            conditions.append(AuditEntry.entity_type == entity_type)
        if entity_id is not None:
            conditions.append(AuditEntry.entity_id == entity_id)

        statement = select(AuditEntry)
        if conditions:
            statement = statement.where(and_(*conditions))
        statement = statement.order_by(AuditEntry.id.asc()).limit(limit)
        return list(self.session.scalars(statement).all())
