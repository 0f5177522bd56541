from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from jobcopilot.db.repositories import Repository
from jobcopilot.db.session import SessionLocal


def test_status_timestamps_are_stamped_once() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        job = repo.create_job("https://jobs.lever.co/acme/1", title="SRE", company="Acme")
        application = repo.create_application(job.id)
        assert application.status == "queued"
        assert application.started_at is None

        started_at = repo.update_application_status(application.id, "in_progress").started_at
        assert started_at is not None

        repo.update_application_status(application.id, "paused")
        resumed = repo.update_application_status(application.id, "in_progress")
        assert resumed.started_at == started_at
        assert resumed.completed_at is None

        completed_at = repo.update_application_status(application.id, "completed").completed_at
        assert completed_at is not None
        assert repo.update_application_status(application.id, "failed").completed_at == completed_at


def test_invalid_values_are_rejected() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        job = repo.create_job("https://example.com/jobs/1")
        application = repo.create_application(job.id)

        with pytest.raises(ValueError):
            repo.update_application_status(application.id, "submitted")
        with pytest.raises(ValueError):
            repo.update_job_status(job.id, "interviewing")
        with pytest.raises(ValueError):
            repo.add_application_step(application.id, "screenshot", "not a step type")
        with pytest.raises(ValueError):
            repo.create_application(job.id + 100)


def test_latest_application_for_job_wins() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        job = repo.create_job("https://example.com/jobs/1")
        first = repo.create_application(job.id)
        repo.update_application_status(first.id, "failed")
        second = repo.create_application(job.id, notes="retry")

        latest = repo.get_application_by_job_id(job.id)
        assert latest is not None
        assert latest.id == second.id
        assert repo.get_application_by_job_id(job.id + 100) is None


def test_steps_are_listed_in_insertion_order() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        job = repo.create_job("https://example.com/jobs/1")
        application = repo.create_application(job.id)

        repo.add_application_step(application.id, "navigation", "Navigating to https://example.com/jobs/1")
        repo.add_application_step(
            application.id,
            "human_step_detected",
            "captcha: reCAPTCHA verification required",
            {"category": "captcha"},
        )

        steps = repo.list_application_steps(application.id)
        assert [step.step_type for step in steps] == ["navigation", "human_step_detected"]
        assert steps[1].metadata_json == {"category": "captcha"}
        assert steps[0].metadata_json == {}
        assert repo.get_last_application_step(application.id).id == steps[1].id


def test_stale_applications() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        job = repo.create_job("https://example.com/jobs/1")

        stale_run = repo.create_application(job.id)
        repo.update_application_status(stale_run.id, "in_progress")
        old_step = repo.add_application_step(stale_run.id, "navigation", "Navigating")
        old_step.timestamp = datetime.now(UTC) - timedelta(hours=2)
        db.commit()

        fresh_run = repo.create_application(job.id)
        repo.update_application_status(fresh_run.id, "paused")
        repo.add_application_step(fresh_run.id, "human_step_detected", "captcha: CAPTCHA verification required")

        stepless_run = repo.create_application(job.id)
        stepless = repo.update_application_status(stepless_run.id, "paused")
        stepless.started_at = datetime.now(UTC) - timedelta(hours=3)
        db.commit()

        queued_run = repo.create_application(job.id)

        stale_ids = [row.id for row in repo.list_stale_applications(timedelta(minutes=60))]
        assert stale_ids == [stale_run.id, stepless_run.id]
        assert fresh_run.id not in stale_ids
        assert queued_run.id not in stale_ids


def test_audit_entries_filter_by_entity() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        repo.add_audit_entry(action_type="application_start", entity_type="application", entity_id=1, user_confirmed=True)
        repo.add_audit_entry(action_type="human_step_pause", entity_type="application", entity_id=2, user_confirmed=False)
        repo.add_audit_entry(action_type="job_queue", entity_type="job", entity_id=1, user_confirmed=True)

        entries = repo.list_audit_entries(entity_type="application", entity_id=1)
        assert [entry.action_type for entry in entries] == ["application_start"]
        assert len(repo.list_audit_entries(entity_type="application")) == 2
        assert len(repo.list_audit_entries()) == 3
