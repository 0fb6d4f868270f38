from __future__ import annotations

import json
import mimetypes
from pathlib import Path

import typer
import uvicorn

from projectproof.config import get_settings
from projectproof.core.auth import SessionTokenAuth, issue_session, revoke_session
from projectproof.core.pipeline import build_pipeline
from projectproof.core.portfolio import build_portfolio, search_projects, serialize_project
from projectproof.db.init import init_database
from projectproof.db.repositories import Repository
from projectproof.db.session import SessionLocal
from projectproof.errors import Unauthenticated
from projectproof.llm.providers import ProviderPool
from projectproof.logging_config import configure_logging
from projectproof.storage.client import build_storage_client
from projectproof.types import MediaFile, Thought, is_accepted_media

app = typer.Typer(help="ProjectProof CLI")
auth_app = typer.Typer(help="Sign in and out")
studio_app = typer.Typer(help="Analyze project media")
projects_app = typer.Typer(help="Browse and publish projects")
profile_app = typer.Typer(help="Manage your profile")

app.add_typer(auth_app, name="auth")
app.add_typer(studio_app, name="studio")
app.add_typer(projects_app, name="projects")
app.add_typer(profile_app, name="profile")

_INITIALIZED = False

THOUGHT_PREFIX = {"info": "[i]", "process": "[>]", "success": "[+]", "warning": "[!]"}


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo_json(payload: dict | list) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _require_user(db, token: str) -> str:
    try:
        return SessionTokenAuth(db, token).current_user_id()
    except Unauthenticated as exc:
        raise typer.BadParameter(str(exc), param_hint="--token") from exc


def _media_from_path(path: Path) -> MediaFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return MediaFile(name=path.name, content_type=content_type or "", path=path)


@app.command("init")
def init_cmd() -> None:
    """Initialize database and data directories."""
    configure_logging()
    result = init_database()
    _echo_json({"ok": True, **result})


@app.command("serve")
def serve_cmd(
    host: str = typer.Option(None, "--host"),
    port: int = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Run the HTTP API."""
    configure_logging()
    settings = get_settings()
    uvicorn.run(
        "projectproof.api.app:create_app",
        factory=True,
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
    )


@auth_app.command("login")
def auth_login(email: str = typer.Option(..., "--email")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            issued = issue_session(db, email=email, ttl_min=get_settings().session_ttl_min)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--email") from exc
    _echo_json({"token": issued.token, "user_id": issued.user_id, "expires_at": issued.expires_at.isoformat()})


@auth_app.command("logout")
def auth_logout(token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        revoked = revoke_session(db, token)
    _echo_json({"revoked": revoked})


@studio_app.command("analyze")
def studio_analyze(
    files: list[Path] = typer.Argument(..., exists=True, readable=True, dir_okay=False),
    token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN"),
) -> None:
    """Upload media, stream the model's reasoning, and save the project."""
    configure_logging()
    ensure_initialized()
    settings = get_settings()

    media_files = []
    for path in files:
        media = _media_from_path(path)
        if not is_accepted_media(media.content_type):
            typer.echo(f"skipping {path.name}: not an image or video", err=True)
            continue
        media_files.append(media)

    try:
        provider = ProviderPool(settings).default()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    def on_thought(thought: Thought) -> None:
        typer.echo(f"{THOUGHT_PREFIX[thought.type]} {thought.text}")

    with SessionLocal() as db:
        _require_user(db, token)
        pipeline = build_pipeline(db, storage=build_storage_client(settings), provider=provider)
        result = pipeline.run(media_files, on_thought, auth=SessionTokenAuth(db, token))

    _echo_json(result.model_dump())
    if not result.success:
        raise typer.Exit(code=1)


@projects_app.command("list")
def projects_list(
    token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN"),
    query: str = typer.Option("", "--query", "-q"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        user_id = _require_user(db, token)
        rows = search_projects(Repository(db), user_id, query)
        _echo_json(
            [
                {"id": row.id, "title": row.title, "category": row.category, "is_public": row.is_public}
                for row in rows
            ]
        )


@projects_app.command("show")
def projects_show(
    project_id: str = typer.Argument(...),
    token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        user_id = _require_user(db, token)
        project = Repository(db).get_project(project_id)
        if project is None or project.user_id != user_id:
            raise typer.BadParameter(f"project {project_id} not found")
        _echo_json(serialize_project(project))


@projects_app.command("publish")
def projects_publish(
    project_id: str = typer.Argument(...),
    token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN"),
    private: bool = typer.Option(False, "--private", help="Hide the project instead"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        user_id = _require_user(db, token)
        repo = Repository(db)
        project = repo.get_project(project_id)
        if project is None or project.user_id != user_id:
            raise typer.BadParameter(f"project {project_id} not found")
        project = repo.set_project_visibility(project_id, not private)
        _echo_json({"id": project.id, "is_public": project.is_public})


@profile_app.command("show")
def profile_show(token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN")) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    with SessionLocal() as db:
        user_id = _require_user(db, token)
        portfolio = build_portfolio(
            Repository(db),
            user_id,
            public_view=False,
            skill_level=settings.default_skill_level,
        )
    _echo_json(portfolio.model_dump())


@profile_app.command("update")
def profile_update(
    token: str = typer.Option(..., "--token", envvar="PROJECTPROOF_TOKEN"),
    full_name: str = typer.Option(None, "--full-name"),
    title: str = typer.Option(None, "--title"),
    location: str = typer.Option(None, "--location"),
    bio: str = typer.Option(None, "--bio"),
    website: str = typer.Option(None, "--website"),
    avatar_url: str = typer.Option(None, "--avatar-url"),
) -> None:
    configure_logging()
    ensure_initialized()
    values = {
        "full_name": full_name,
        "title": title,
        "location": location,
        "bio": bio,
        "website": website,
        "avatar_url": avatar_url,
    }
    values = {key: value for key, value in values.items() if value is not None}
    with SessionLocal() as db:
        user_id = _require_user(db, token)
        profile = Repository(db).upsert_profile(user_id, values)
        _echo_json({"id": profile.id, **values})


if __name__ == "__main__":
    app()
