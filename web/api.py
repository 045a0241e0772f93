"""API route handlers for the file manager"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from filedeck.app import FileDeckApp
from filedeck.models.user import Identity

from .auth_deps import (
    SESSION_COOKIE_NAME,
    get_filedeck,
    get_optional_identity,
    require_auth,
)
from .models import (
    ChangePasswordRequest,
    CreateEntryRequest,
    ErrorResponse,
    FileContentResponse,
    ListResponse,
    LoginRequest,
    OkResponse,
    PathRequest,
    RenameRequest,
    SessionResponse,
    WriteFileRequest,
)


# Every error body is {"error": message}
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 404, 409, 429, 500)
}

router = APIRouter(prefix="/api", tags=["api"], responses=ERROR_RESPONSES)


# --- Session Endpoints ---

@router.get("/session", response_model=SessionResponse)
async def session_status(identity: Optional[Identity] = Depends(get_optional_identity)):
    """Who is logged in, if anyone"""
    return SessionResponse(user=identity)


@router.post("/login", response_model=OkResponse)
async def login(login_data: LoginRequest, filedeck: FileDeckApp = Depends(get_filedeck)):
    """Login with username and password. The attempt was already counted by the gate."""
    auth_service = filedeck.auth_service
    session = await run_in_threadpool(auth_service.login, login_data.username, login_data.password)

    response = JSONResponse({"ok": True})
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=auth_service.sign_session_id(session.id),
        max_age=filedeck.settings.session_max_age_seconds,
        httponly=True,
        secure=filedeck.settings.is_production,
        samesite="lax",
    )
    return response


@router.post("/logout", response_model=OkResponse)
async def logout(
    request: Request,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    """Destroy the session server-side and clear the cookie"""
    await run_in_threadpool(filedeck.auth_service.logout, request.state.session_id, identity)
    response = JSONResponse({"ok": True})
    response.delete_cookie(key=SESSION_COOKIE_NAME)
    return response


@router.post("/change-password", response_model=OkResponse)
async def change_password(
    password_data: ChangePasswordRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    """Change current user's password"""
    await run_in_threadpool(
        filedeck.auth_service.change_password,
        identity,
        password_data.current_password,
        password_data.new_password,
    )
    return OkResponse()


# --- File Endpoints ---

@router.get("/list", response_model=ListResponse)
async def list_directory(
    path: str = Query(""),
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    resolved, entries = await run_in_threadpool(filedeck.file_service.list_dir, path)
    return ListResponse(path=resolved.relative_path, entries=entries)


@router.post("/create-folder", response_model=OkResponse)
async def create_folder(
    body: CreateEntryRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    await run_in_threadpool(filedeck.file_service.create_folder, identity.username, body.path, body.name)
    return OkResponse()


@router.post("/create-file", response_model=OkResponse)
async def create_file(
    body: CreateEntryRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    await run_in_threadpool(filedeck.file_service.create_file, identity.username, body.path, body.name)
    return OkResponse()


@router.post("/rename", response_model=OkResponse)
async def rename(
    body: RenameRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    await run_in_threadpool(filedeck.file_service.rename, identity.username, body.path, body.new_name)
    return OkResponse()


@router.post("/delete", response_model=OkResponse)
async def delete(
    body: PathRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    await run_in_threadpool(filedeck.file_service.delete, identity.username, body.path)
    return OkResponse()


@router.get("/file", response_model=FileContentResponse)
async def read_file(
    path: str = Query(""),
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    content = await run_in_threadpool(filedeck.file_service.read_text, path)
    return FileContentResponse(content=content)


@router.post("/file", response_model=OkResponse)
async def write_file(
    body: WriteFileRequest,
    identity: Identity = Depends(require_auth),
    filedeck: FileDeckApp = Depends(get_filedeck),
):
    await run_in_threadpool(filedeck.file_service.write_text, identity.username, body.path, body.content)
    return OkResponse()
