import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from frameconsole.modules.session import InvalidSwitch, Session, StaleSession
from frameconsole.modules.storage import SessionStore

from .models import (
    ContextResponse,
    EvaluateRequest,
    EvaluateResponse,
    SwitchRequest,
    SwitchResponse,
)
from .permissions import RequestPermissions

logger = logging.getLogger(__name__)

SESSION_UNAVAILABLE = "Session is no longer available in memory."


def create_console_router(
    store: SessionStore,
    permissions: Optional[RequestPermissions] = None,
    allow_all_connections: bool = False,
) -> APIRouter:
    """
    Build the console session endpoints.

    Args:
        store: Store sessions are looked up in
        permissions: Networks allowed to use the console
        allow_all_connections: Skip the network check entirely
    """
    permissions = permissions or RequestPermissions()
    router = APIRouter(prefix="/repl_sessions")

    async def verify_permitted(request: Request) -> None:
        remote_ip = request.client.host if request.client else None
        if not permissions.permitted(remote_ip, allow_all=allow_all_connections):
            raise HTTPException(403, "Console access is not permitted from this address")

    async def find_session(session_id: str) -> Session:
        session = await store.find(session_id)
        if session is None:
            raise HTTPException(404, SESSION_UNAVAILABLE)
        return session

    @router.put(
        "/{session_id}",
        response_model=EvaluateResponse,
        dependencies=[Depends(verify_permitted)],
    )
    async def evaluate(session_id: str, body: EvaluateRequest) -> EvaluateResponse:
        """Evaluate input in the session's current context."""
        session = await find_session(session_id)
        try:
            # User code may block; keep it off the event loop.
            output = await run_in_threadpool(session.evaluate, body.input)
        except StaleSession as e:
            raise HTTPException(410, str(e))
        return EvaluateResponse(output=output)

    @router.post(
        "/{session_id}/trace",
        response_model=SwitchResponse,
        dependencies=[Depends(verify_permitted)],
    )
    async def switch(session_id: str, body: SwitchRequest) -> SwitchResponse:
        """Switch the session to another frame."""
        session = await find_session(session_id)
        try:
            # Waits on the session lock while an evaluation runs.
            await run_in_threadpool(session.switch_to, body.frame_id, body.exception_object_id)
        except InvalidSwitch as e:
            raise HTTPException(400, str(e))
        except StaleSession as e:
            raise HTTPException(410, str(e))
        return SwitchResponse()

    @router.get(
        "/{session_id}/context",
        response_model=ContextResponse,
        dependencies=[Depends(verify_permitted)],
    )
    async def context(session_id: str, objpath: str = Query("")) -> ContextResponse:
        """List names visible from the current context."""
        session = await find_session(session_id)
        try:
            names = await run_in_threadpool(session.context_info, objpath)
        except StaleSession as e:
            raise HTTPException(410, str(e))
        except Exception as e:
            logger.debug(f"Context lookup for {objpath!r} failed: {e}")
            raise HTTPException(422, f"{type(e).__name__}: {e}")
        return ContextResponse(context=names)

    return router
