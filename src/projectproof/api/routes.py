from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from projectproof.api.deps import get_bearer_token, get_db, optional_user_id, require_user_id
from projectproof.api.schemas import (
    CancelResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    ProjectResponse,
    RunReservationResponse,
    SessionCreateRequest,
    SessionResponse,
    StudioRunResponse,
    UploadedFileResponse,
    VisibilityRequest,
)
from projectproof.config import get_settings
from projectproof.core.auth import SessionTokenAuth, issue_session, parse_bearer, revoke_session
from projectproof.core.pipeline import build_pipeline
from projectproof.core.portfolio import build_portfolio, search_projects, serialize_project
from projectproof.core.runtime import get_event_bus, get_run_registry
from projectproof.db.repositories import Repository
from projectproof.db.session import SessionLocal
from projectproof.errors import Unauthenticated
from projectproof.types import MediaFile, Portfolio, Thought, UploadedFile, is_accepted_media

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

WS_UNAUTHENTICATED = 4401
WS_RUN_NOT_FOUND = 4404


@router.post("/auth/sessions", response_model=SessionResponse)
def create_session(payload: SessionCreateRequest, db: Session = Depends(get_db)) -> SessionResponse:
    try:
        issued = issue_session(db, email=payload.email, ttl_min=get_settings().session_ttl_min)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SessionResponse(token=issued.token, user_id=issued.user_id, expires_at=issued.expires_at.isoformat())


@router.delete("/auth/sessions")
def delete_session(token: str | None = Depends(get_bearer_token), db: Session = Depends(get_db)) -> dict:
    if not token or not revoke_session(db, token):
        raise HTTPException(status_code=401, detail="No active session")
    return {"revoked": True}


@router.get("/profile", response_model=ProfileResponse)
def get_profile(user_id: str = Depends(require_user_id), db: Session = Depends(get_db)) -> ProfileResponse:
    profile = Repository(db).get_profile(user_id)
    if profile is None:
        return ProfileResponse(id=user_id)
    return _profile_response(profile)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    profile = Repository(db).upsert_profile(user_id, payload.model_dump(exclude_unset=True))
    return _profile_response(profile)


@router.get("/portfolio", response_model=Portfolio)
def get_own_portfolio(user_id: str = Depends(require_user_id), db: Session = Depends(get_db)) -> Portfolio:
    settings = get_settings()
    return build_portfolio(Repository(db), user_id, public_view=False, skill_level=settings.default_skill_level)


@router.get("/portfolio/{user_id}", response_model=Portfolio)
def get_public_portfolio(user_id: str, db: Session = Depends(get_db)) -> Portfolio:
    settings = get_settings()
    try:
        return build_portfolio(Repository(db), user_id, public_view=True, skill_level=settings.default_skill_level)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(
    q: str = "",
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> list[ProjectResponse]:
    rows = search_projects(Repository(db), user_id, q)
    return [ProjectResponse.model_validate(serialize_project(row)) for row in rows]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    user_id: str | None = Depends(optional_user_id),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    project = Repository(db).get_project(project_id)
    if project is None or (not project.is_public and project.user_id != user_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.model_validate(serialize_project(project))


@router.patch("/projects/{project_id}/visibility", response_model=ProjectResponse)
def set_project_visibility(
    project_id: str,
    payload: VisibilityRequest,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> ProjectResponse:
    repo = Repository(db)
    project = repo.get_project(project_id)
    if project is None or project.user_id != user_id:
        raise HTTPException(status_code=404, detail="Project not found")
    project = repo.set_project_visibility(project_id, payload.is_public)
    return ProjectResponse.model_validate(serialize_project(project))


@router.post("/studio/reservations", response_model=RunReservationResponse)
def reserve_studio_run(user_id: str = Depends(require_user_id)) -> RunReservationResponse:
    run_id = get_run_registry().reserve(user_id)
    logger.info("Reserved run_id=%s user_id=%s", run_id, user_id)
    return RunReservationResponse(run_id=run_id)


@router.post("/studio/runs", response_model=StudioRunResponse)
async def create_studio_run(
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    run_id: str | None = Form(default=None),
    authorization: str | None = Header(default=None),
) -> StudioRunResponse:
    settings = get_settings()
    provider = request.app.state.provider
    storage = request.app.state.storage
    if provider is None:
        raise HTTPException(status_code=503, detail="Analysis provider is not configured")

    token = parse_bearer(authorization)
    with SessionLocal() as db:
        try:
            user_id = SessionTokenAuth(db, token).current_user_id()
        except Unauthenticated as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

    media_files: list[MediaFile] = []
    for upload in files or []:
        content_type = upload.content_type or ""
        if not is_accepted_media(content_type):
            logger.info("Skipping upload name=%s content_type=%s", upload.filename, content_type)
            continue
        data = await upload.read()
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail=f"{upload.filename} exceeds {settings.max_upload_mb} MB")
        media_files.append(MediaFile(name=upload.filename or "upload", content_type=content_type, data=data))

    uploads = [UploadedFile(file=media, size_bytes=len(media.data or b"")) for media in media_files]
    run_id = run_id or str(uuid.uuid4())
    registry = get_run_registry()
    try:
        cancel_token = registry.register(run_id, user_id)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    event_bus = get_event_bus()
    thoughts: list[Thought] = []

    def on_thought(thought: Thought) -> None:
        thoughts.append(thought)
        event_bus.publish(run_id, {"run_id": run_id, "terminal": False, **thought.model_dump()})

    def execute():
        with SessionLocal() as run_db:
            pipeline = build_pipeline(run_db, storage=storage, provider=provider)
            return pipeline.run(
                media_files,
                on_thought,
                auth=SessionTokenAuth(run_db, token),
                cancel_token=cancel_token,
            )

    for upload in uploads:
        upload.advance()
    try:
        result = await run_in_threadpool(execute)
    finally:
        registry.release(run_id)

    if result.success:
        for upload in uploads:
            upload.advance()

    event_bus.publish(run_id, {"run_id": run_id, "terminal": True, **result.model_dump()})
    return StudioRunResponse(
        run_id=run_id,
        thoughts=thoughts,
        files=[UploadedFileResponse(**upload.describe()) for upload in uploads],
        **result.model_dump(),
    )


@router.delete("/studio/runs/{run_id}", response_model=CancelResponse)
def cancel_studio_run(run_id: str, user_id: str = Depends(require_user_id)) -> CancelResponse:
    if not get_run_registry().cancel(run_id, user_id):
        raise HTTPException(status_code=404, detail="Run not in flight")
    logger.info("Cancel requested run_id=%s user_id=%s", run_id, user_id)
    return CancelResponse(run_id=run_id, cancelled=True)


@router.websocket("/studio/runs/{run_id}/stream")
async def stream_studio_run(websocket: WebSocket, run_id: str, token: str | None = None) -> None:
    """Stream a run's thoughts and its terminal result to the run's owner.

    The session token comes from the ``token`` query parameter, or from the
    Authorization header for clients that can set one. Unknown, finished and
    foreign runs are closed with 4404 before any subscription is made.
    """
    await websocket.accept()
    token = token or parse_bearer(websocket.headers.get("authorization"))
    with SessionLocal() as db:
        try:
            user_id = SessionTokenAuth(db, token).current_user_id()
        except Unauthenticated:
            await websocket.close(code=WS_UNAUTHENTICATED)
            return
    if get_run_registry().owner(run_id) != user_id:
        await websocket.close(code=WS_RUN_NOT_FOUND)
        return

    subscription = get_event_bus().open(run_id)
    try:
        await websocket.send_json({"run_id": run_id, "terminal": False, "status": "subscribed"})
        forwarder = asyncio.create_task(_forward_events(websocket, subscription))
        watcher = asyncio.create_task(_wait_for_disconnect(websocket))
        try:
            await asyncio.wait({forwarder, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (forwarder, watcher):
                task.cancel()
            await asyncio.gather(forwarder, watcher, return_exceptions=True)
    except WebSocketDisconnect:
        return
    finally:
        subscription.close()

    if not forwarder.cancelled() and forwarder.exception() is None:
        await websocket.close()


async def _forward_events(websocket: WebSocket, subscription) -> None:
    async for event in subscription:
        await websocket.send_json(event)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while (await websocket.receive())["type"] != "websocket.disconnect":
            pass
    except WebSocketDisconnect:
        return


def _profile_response(profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        full_name=profile.full_name,
        title=profile.title,
        location=profile.location,
        bio=profile.bio,
        avatar_url=profile.avatar_url,
        website=profile.website,
        updated_at=profile.updated_at.isoformat() if profile.updated_at else None,
    )
