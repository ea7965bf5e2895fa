"""
BLANG router - Open string tables, edit strings, apply and export JSON patches
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from loguru import logger

from parsers.errors import FormatError, NotFoundError
from services.core.blang_session import BlangSession
from services.core.patch_file import dump_patch
from fastapi_core import session_registry
from fastapi_core.shared_services import get_shared_decryptor
from fastapi_models.blang_models import (
    OpenPathRequest, OpenResourceRequest, StringEditRequest,
    BlangSessionResponse, BlangStringResponse, BlangStringListResponse,
    PatchApplyResponse, ResourceListResponse, SaveResponse,
    ActiveSessionInfo, ActiveSessionListResponse
)

router = APIRouter(tags=["blang"])


def _session_response(session_id: int, session: BlangSession) -> BlangSessionResponse:
    return BlangSessionResponse(
        session_id=session_id,
        language=session.language,
        layout=session.blang_file.layout.name,
        string_count=len(session.blang_file),
        any_modified=session.any_modified,
        unsaved_changes=session.unsaved_changes
    )


def _string_response(index: int, blang_string) -> BlangStringResponse:
    return BlangStringResponse(index=index, **blang_string.to_dict())


def _get_session(session_id: int) -> BlangSession:
    try:
        return session_registry.get_session(session_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _new_session() -> BlangSession:
    return BlangSession(decryptor=get_shared_decryptor())


@router.post("/blang/sessions/new", response_model=BlangSessionResponse)
def new_blang_session():
    """Create a session holding a new, blank table"""
    session = _new_session()
    session.new_blang()
    session_id = session_registry.register_session(session)
    return _session_response(session_id, session)


@router.post("/blang/sessions/open", response_model=BlangSessionResponse)
def open_blang_file(request: OpenPathRequest):
    """Open a loose .blang file"""
    session = _new_session()
    try:
        session.load_blang_file(request.path)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"File not found: {request.path}")
    except OSError as e:
        logger.warning(f"Cannot read {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot read {request.path}: {e.strerror or e}")
    except FormatError as e:
        logger.warning(f"Failed to load BLANG file {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid BLANG file: {e}")

    session_id = session_registry.register_session(session)
    return _session_response(session_id, session)


@router.post("/blang/resources/list", response_model=ResourceListResponse)
def list_resource_blangs(request: OpenPathRequest):
    """List the BLANG tables inside a .resources container"""
    session = _new_session()
    try:
        names = session.open_resources(request.path)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"File not found: {request.path}")
    except OSError as e:
        logger.warning(f"Cannot read {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot read {request.path}: {e.strerror or e}")
    except FormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid resources file: {e}")

    return ResourceListResponse(path=request.path, names=names)


@router.post("/blang/sessions/open-resource", response_model=BlangSessionResponse)
def open_resource_blang(request: OpenResourceRequest):
    """Open a BLANG table embedded in a .resources container"""
    session = _new_session()
    try:
        session.open_resources(request.path)
        session.load_from_resources(request.name)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"File not found: {request.path}")
    except OSError as e:
        logger.warning(f"Cannot read {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot read {request.path}: {e.strerror or e}")
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except FormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid resources file: {e}")

    session_id = session_registry.register_session(session)
    return _session_response(session_id, session)


@router.get("/blang/sessions", response_model=ActiveSessionListResponse)
def list_blang_sessions():
    """List open editing sessions"""
    sessions = [
        ActiveSessionInfo(session_id=session_id, **info)
        for session_id, info in session_registry.get_active_sessions().items()
    ]
    return ActiveSessionListResponse(sessions=sessions, total_count=len(sessions))


@router.get("/blang/sessions/{session_id}", response_model=BlangSessionResponse)
def get_blang_session(session_id: int):
    return _session_response(session_id, _get_session(session_id))


@router.get("/blang/sessions/{session_id}/strings", response_model=BlangStringListResponse)
def list_strings(
    session_id: int,
    query: Optional[str] = Query(None, description="Filter on identifier or text")
):
    """List strings, optionally filtered"""
    session = _get_session(session_id)
    index_of = {id(s): i for i, s in enumerate(session.blang_file.strings)}
    matches = session.filter_strings(query or "")
    return BlangStringListResponse(
        strings=[_string_response(index_of[id(s)], s) for s in matches],
        total_count=len(matches),
        query=query or ""
    )


@router.post("/blang/sessions/{session_id}/strings", response_model=BlangStringResponse)
def add_string(session_id: int):
    """Append a blank placeholder string"""
    session = _get_session(session_id)
    blang_string = session.add_string()
    return _string_response(len(session.blang_file) - 1, blang_string)


@router.patch("/blang/sessions/{session_id}/strings/{index}", response_model=BlangStringResponse)
def edit_string(session_id: int, index: int, request: StringEditRequest):
    """Edit a string's identifier and/or text"""
    session = _get_session(session_id)
    try:
        blang_string = session.edit_string(index, identifier=request.identifier, text=request.text)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return _string_response(index, blang_string)


async def _raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/blang/sessions/{session_id}/patch", response_model=PatchApplyResponse)
def apply_patch(session_id: int, body: bytes = Depends(_raw_body)):
    """
    Apply a JSON patch. The body is read as raw text so that comments and
    trailing commas in hand-edited patches are accepted.
    """
    session = _get_session(session_id)
    try:
        result = session.load_patch(body)
    except FormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid patch: {e}")

    return PatchApplyResponse(updated=result.updated, added=result.added, any_modified=result.any_modified)


@router.get("/blang/sessions/{session_id}/patch")
def get_patch(session_id: int):
    """Export the modified strings as a JSON patch"""
    session = _get_session(session_id)
    return Response(content=dump_patch(session.export_patch()), media_type="application/json")


@router.post("/blang/sessions/{session_id}/save-patch", response_model=SaveResponse)
def save_patch(session_id: int, request: OpenPathRequest):
    """Write the JSON patch to disk"""
    session = _get_session(session_id)
    try:
        written = session.save_patch(request.path)
    except OSError as e:
        logger.error(f"Failed to save patch to {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to save patch: {e}")

    message = None if written else "No modified strings to save"
    return SaveResponse(path=request.path, written=written, message=message)


@router.post("/blang/sessions/{session_id}/save-blang", response_model=SaveResponse)
def save_blang(session_id: int, request: OpenPathRequest):
    """Write the full table as a .blang file"""
    session = _get_session(session_id)
    try:
        session.save_blang(request.path)
    except OSError as e:
        logger.error(f"Failed to save BLANG to {request.path}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to save BLANG: {e}")

    return SaveResponse(path=request.path, written=True)


@router.delete("/blang/sessions/{session_id}")
def close_blang_session(session_id: int):
    if not session_registry.close_session(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"BLANG session {session_id} not found")
    return {"closed": True, "session_id": session_id}
