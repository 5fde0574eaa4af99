"""Session list / rename / delete endpoints."""

from fastapi import APIRouter, Depends

from application.services.sessions import SessionService
from adapters.rest.dependencies import get_session_service
from adapters.rest.schemas import (
    DeleteSessionBody,
    RenameSessionBody,
    SessionListOut,
    SessionOut,
    SuccessOut,
)

router = APIRouter(prefix="/api/chat/sessions", tags=["sessions"])


@router.get("", response_model=SessionListOut)
async def list_sessions(sessions: SessionService = Depends(get_session_service)):
    return SessionListOut(
        sessions=[
            SessionOut(id=s.id, name=s.name, created_at=s.created_at)
            for s in await sessions.list_sessions()
        ]
    )


@router.patch("", response_model=SuccessOut)
async def rename_session(
    body: RenameSessionBody,
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.rename(body.id, body.name)
    return SuccessOut()


@router.delete("", response_model=SuccessOut)
async def delete_session(
    body: DeleteSessionBody,
    sessions: SessionService = Depends(get_session_service),
):
    # Deleting an unknown id is not an error
    await sessions.delete(body.id)
    return SuccessOut()
