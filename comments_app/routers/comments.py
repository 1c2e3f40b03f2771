from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from comments_app.core.errors import CommentError
from comments_app.models import (
    CommentErrorOut,
    CommentViewResp,
    DraftOut,
    DraftPatchReq,
    ListStateOut,
    NotificationOut,
    SubmitReq,
    SubmitResp,
)
from comments_app.services.comment_controller import Notification
from comments_app.services.comment_sessions import CommentSession, sessions

router = APIRouter(prefix="/ui/posts/{post_id}/comments", tags=["comments"])


def require_client(x_client_id: Optional[str] = Header(default=None, alias="X-Client-Id")) -> str:
    client_id = (x_client_id or "").strip()
    if not client_id:
        raise HTTPException(401, "Missing X-Client-Id")
    return client_id


def require_session(client_id: str, post_id: str) -> CommentSession:
    session = sessions.get(client_id, post_id)
    if session is None:
        raise HTTPException(404, "Not attached to this post")
    return session


def _error_out(error: Optional[CommentError]) -> Optional[CommentErrorOut]:
    if error is None:
        return None
    return CommentErrorOut(
        kind=error.kind.value,
        message=error.message,
        code=error.code.value if error.code else None,
    )


def _notification_out(n: Notification) -> NotificationOut:
    return NotificationOut(kind=n.kind.value, title=n.title, description=n.description, error=_error_out(n.error))


def render_view(session: CommentSession) -> CommentViewResp:
    ctl = session.controller
    state = ctl.list_state
    return CommentViewResp(
        post_id=ctl.post_id,
        list_state=ListStateOut(
            status=state.status.value,
            comments=list(state.comments),
            count=len(state.comments),
            error=_error_out(state.error),
        ),
        submit_state=ctl.submit_state.value,
        draft=DraftOut(commenter_name=ctl.draft.commenter_name, content=ctl.draft.content),
        notifications=[_notification_out(n) for n in session.drain()],
    )


def _apply_draft(session: CommentSession, body: DraftPatchReq) -> None:
    if body.commenter_name is not None:
        session.controller.set_commenter_name(body.commenter_name)
    if body.content is not None:
        session.controller.set_content(body.content)


@router.post("/attach", response_model=CommentViewResp)
async def ui_attach(post_id: str, client_id: str = Depends(require_client)):
    session = sessions.get_or_create(client_id, post_id)
    await session.controller.attach(post_id)
    return render_view(session)


@router.get("", response_model=CommentViewResp)
async def ui_view(post_id: str, client_id: str = Depends(require_client)):
    return render_view(require_session(client_id, post_id))


@router.post("/refresh", response_model=CommentViewResp)
async def ui_refresh(post_id: str, client_id: str = Depends(require_client)):
    session = require_session(client_id, post_id)
    await session.controller.refresh()
    return render_view(session)


@router.patch("/draft", response_model=CommentViewResp)
async def ui_update_draft(post_id: str, body: DraftPatchReq, client_id: str = Depends(require_client)):
    session = require_session(client_id, post_id)
    _apply_draft(session, body)
    return render_view(session)


@router.post("/submit", response_model=SubmitResp)
async def ui_submit(post_id: str, body: Optional[SubmitReq] = None, client_id: str = Depends(require_client)):
    session = require_session(client_id, post_id)
    if body is not None:
        _apply_draft(session, body)
    result = await session.controller.submit()
    return SubmitResp(
        outcome=result.outcome.value,
        error=_error_out(result.error),
        refresh_error=_error_out(result.refresh_error),
        view=render_view(session),
    )


@router.delete("/attach")
async def ui_detach(post_id: str, client_id: str = Depends(require_client)):
    session = sessions.drop(client_id, post_id)
    return {"detached": session is not None}
