from __future__ import annotations

import json
from datetime import timedelta

import typer
import uvicorn

from jobcopilot.api.app import create_app
from jobcopilot.browser.domain_adapters import detect_adapter
from jobcopilot.browser.session import open_browser_session
from jobcopilot.config import get_settings
from jobcopilot.core.audit import AuditLog
from jobcopilot.core.workflow import ApplicationWorkflow
from jobcopilot.db.init import init_database
from jobcopilot.db.models import ApplicationRun
from jobcopilot.db.repositories import Repository
from jobcopilot.db.session import SessionLocal
from jobcopilot.errors import CopilotError
from jobcopilot.logging_config import configure_logging
from jobcopilot.types import TERMINAL_APPLICATION_STATUSES, ApplicationContext, WorkflowResult

app = typer.Typer(help="Job Application Copilot CLI")
jobs_app = typer.Typer(help="Job registry commands")
applications_app = typer.Typer(help="Inspect application runs and their step logs")
audit_app = typer.Typer(help="Compliance audit log")

app.add_typer(jobs_app, name="jobs")
app.add_typer(applications_app, name="applications")
app.add_typer(audit_app, name="audit")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _fail_with(exc: CopilotError) -> None:
    typer.secho("\nError:", fg="red", bold=True, err=True)
    typer.secho(exc.message, fg="red", err=True)
    if exc.suggestions:
        typer.secho("\nSuggestions:", fg="yellow", err=True)
        for suggestion in exc.suggestions:
            typer.secho(f"  - {suggestion}", fg="yellow", err=True)
    raise typer.Exit(code=1)


def _serialize_application(application: ApplicationRun) -> dict:
    return {
        "id": application.id,
        "job_id": application.job_id,
        "status": application.status,
        "started_at": application.started_at.isoformat() if application.started_at else None,
        "completed_at": application.completed_at.isoformat() if application.completed_at else None,
        "notes": application.notes,
    }


def _print_workflow_guide(hint: str) -> None:
    rule = "=" * 63
    typer.secho(rule, fg="cyan", bold=True)
    typer.secho("               APPLICATION WORKFLOW GUIDE", fg="cyan", bold=True)
    typer.secho(rule + "\n", fg="cyan", bold=True)
    typer.echo("  How this works:")
    typer.echo("  1. The browser opens the job application page")
    typer.echo("  2. The tool monitors for human-required steps (CAPTCHA, 2FA, ...)")
    typer.echo("  3. When one is detected you get a desktop notification")
    typer.echo("  4. The tool resumes automatically after you complete the step")
    typer.echo("  5. Every action is logged for compliance\n")
    typer.secho("  Important:", fg="yellow")
    typer.echo("  - You must submit the final application yourself")
    typer.echo("  - Review all information before submission")
    typer.echo(f"  - {hint}\n")
    typer.secho(rule + "\n", fg="cyan", bold=True)


def _print_result(result: WorkflowResult, application_id: int, job_id: int) -> None:
    if result.success:
        typer.secho("\nApplication workflow completed successfully!\n", fg="green", bold=True)
        typer.echo("All steps logged in database")
        typer.echo(f"Application ID: {application_id}\n")
        return

    if result.recoverable:
        typer.secho(f"\nApplication paused: {result.message}\n", fg="yellow", bold=True)
        typer.echo("The run is still resumable. Finish the step in the browser, then run")
        typer.echo(f"  jobcopilot apply --job {job_id}\n")
        return

    typer.secho(f"\nApplication workflow failed: {result.message}\n", fg="red", bold=True)


@app.command("init")
def init_cmd() -> None:
    """Initialize database and data directories."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("apply")
def apply_cmd(job: int = typer.Option(..., "--job", help="Numeric id of the job to apply to")) -> None:
    """Open the job's application page and pause whenever a human step appears."""
    configure_logging()
    ensure_initialized()
    settings = get_settings()

    with SessionLocal() as db:
        repo = Repository(db)
        audit = AuditLog(db)

        job_row = repo.get_job(job)
        if job_row is None:
            typer.secho(f"\nJob not found: {job}", fg="red", err=True)
            raise typer.Exit(code=1)

        typer.secho("\nJob Application Copilot - Apply Workflow\n", fg="blue", bold=True)
        typer.echo(f"  Job: {job_row.title} at {job_row.company}")
        typer.echo(f"  URL: {job_row.url}\n")

        application = repo.get_application_by_job_id(job)
        if application is not None:
            typer.secho(
                f"An application for this job already exists (status: {application.status})",
                fg="yellow",
            )
            if application.status in TERMINAL_APPLICATION_STATUSES:
                if not typer.confirm("Start a new application anyway?", default=False):
                    typer.echo("\nApplication cancelled\n")
                    return
                application = repo.create_application(job)
            elif not typer.confirm("Resume the existing application?", default=True):
                typer.echo("\nApplication cancelled\n")
                return
        else:
            application = repo.create_application(job)

        if not typer.confirm("Ready to launch browser and start application?", default=True):
            typer.echo("\nApplication cancelled\n")
            return

        typer.secho("\nLaunching browser...\n", fg="blue")
        context = ApplicationContext(
            application_id=application.id,
            job_id=job_row.id,
            job_url=job_row.url,
            job_title=job_row.title,
            job_company=job_row.company,
        )

        try:
            with open_browser_session(settings) as page:
                repo.update_job_status(job, "applied")
                audit.record(
                    "application_start",
                    "application",
                    application.id,
                    True,
                    {"job_id": job, "job_title": job_row.title, "job_company": job_row.company},
                )
                _print_workflow_guide(detect_adapter(job_row.url).hint)

                result = ApplicationWorkflow(db, settings=settings).run(page, context)
                _print_result(result, application.id, job)

                if typer.confirm("Close browser window?", default=False):
                    audit.record("session_close", "application", application.id, True, {"job_id": job})
                else:
                    typer.prompt(
                        "Browser left open for you to review/complete the application. "
                        "Press Enter to close it when done",
                        default="",
                        show_default=False,
                    )
        except CopilotError as exc:
            _fail_with(exc)

        typer.echo("\nBrowser closed\n")
        if not result.success:
            raise typer.Exit(code=1)


@jobs_app.command("add")
def jobs_add(
    url: str = typer.Option(..., "--url"),
    title: str = typer.Option("", "--title"),
    company: str = typer.Option("", "--company"),
    location: str = typer.Option("", "--location"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        job = Repository(db).create_job(url, title=title, company=company, location=location)
        typer.echo(json.dumps({"id": job.id, "url": job.url, "status": job.status}, indent=2))


@jobs_app.command("list")
def jobs_list(
    limit: int = typer.Option(20, "--limit"),
    status: str | None = typer.Option(None, "--status"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        jobs = Repository(db).list_jobs(limit=limit, status=status)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": job.id,
                        "title": job.title,
                        "company": job.company,
                        "status": job.status,
                        "url": job.url,
                    }
                    for job in jobs
                ],
                indent=2,
            )
        )


@applications_app.command("list")
def applications_list(
    status: str | None = typer.Option(None, "--status"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_applications(status=status, limit=limit)
        typer.echo(json.dumps([_serialize_application(row) for row in rows], indent=2))


@applications_app.command("show")
def applications_show(application_id: int = typer.Option(..., "--id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        application = repo.get_application(application_id)
        if application is None:
            raise typer.BadParameter(f"application {application_id} not found")
        steps = repo.list_application_steps(application_id)
        typer.echo(
            json.dumps(
                {
                    "application": _serialize_application(application),
                    "steps": [
                        {
                            "id": step.id,
                            "step_type": step.step_type,
                            "description": step.description,
                            "timestamp": step.timestamp.isoformat(),
                            "metadata": step.metadata_json,
                        }
                        for step in steps
                    ],
                },
                indent=2,
            )
        )


@applications_app.command("stale")
def applications_stale(
    minutes: int | None = typer.Option(None, "--minutes", help="Defaults to STALE_RUN_THRESHOLD_MIN"),
) -> None:
    """List runs left in_progress/paused with no recent step."""
    configure_logging()
    ensure_initialized()
    threshold = minutes if minutes is not None else get_settings().stale_run_threshold_min
    with SessionLocal() as db:
        rows = Repository(db).list_stale_applications(timedelta(minutes=threshold))
        typer.echo(json.dumps([_serialize_application(row) for row in rows], indent=2))


@audit_app.command("list")
def audit_list(
    entity_type: str | None = typer.Option(None, "--entity-type"),
    entity_id: int | None = typer.Option(None, "--entity-id"),
    limit: int = typer.Option(100, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        entries = Repository(db).list_audit_entries(entity_type=entity_type, entity_id=entity_id, limit=limit)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": entry.id,
                        "timestamp": entry.timestamp.isoformat(),
                        "action_type": entry.action_type,
                        "entity_type": entry.entity_type,
                        "entity_id": entry.entity_id,
                        "user_confirmed": entry.user_confirmed,
                        "metadata": entry.metadata_json,
                    }
                    for entry in entries
                ],
                indent=2,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    """Serve the read-only monitoring API."""
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
