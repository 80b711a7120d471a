"""Comment endpoints - feedback CRUD, classification preview and conflict listing."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Query, status

from backend.app.api.deps import CurrentContext, SettingsDep, UnitOfWorkDep
from backend.app.errors import NotFoundError
from backend.app.feedback.comments import (
    classify_preview,
    create_comment,
    delete_comment,
    list_comments,
    thread_comments,
    update_comment,
)
from backend.app.feedback.conflicts import list_conflicts
from backend.app.models.comment import (
    ClassifyRequest,
    Comment,
    CommentCreate,
    CommentIntent,
    CommentThread,
    CommentUpdate,
    Conflict,
)
from backend.app.models.common import CommentStatus
from backend.app.models.envelope import Envelope, ok

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=Envelope[Comment], status_code=status.HTTP_201_CREATED)
async def post_comment(
    body: CommentCreate, ctx: CurrentContext, uow: UnitOfWorkDep, settings: SettingsDep
) -> Envelope[Comment]:
    """Create a comment; it is classified and checked for conflicts immediately."""
    async with uow:
        comment = await create_comment(
            uow, body, ctx.user_id, settings.conflict_scan_max_comments
        )
    return ok(comment)


@router.get("", response_model=Envelope[list[Comment] | list[CommentThread]])
async def get_comments(
    uow: UnitOfWorkDep,
    trip_id: uuid.UUID,
    comment_status: Annotated[CommentStatus | None, Query(alias="status")] = None,
    version: Annotated[int | None, Query(ge=0)] = None,
    threaded: bool = False,
) -> Envelope[list[Comment] | list[CommentThread]]:
    """List a trip's comments, optionally filtered and grouped into threads."""
    async with uow:
        comments = await list_comments(uow, trip_id, status=comment_status, version=version)
    if threaded:
        return ok(thread_comments(comments))
    return ok(comments)


@router.post("/classify", response_model=Envelope[CommentIntent])
async def post_classify(body: ClassifyRequest) -> Envelope[CommentIntent]:
    """Preview how a comment will be interpreted. Nothing is stored."""
    return ok(classify_preview(body))


@router.get("/conflicts", response_model=Envelope[list[Conflict]])
async def get_conflicts(
    trip_id: uuid.UUID, uow: UnitOfWorkDep, settings: SettingsDep
) -> Envelope[list[Conflict]]:
    """Current conflicts between a trip's pending comments (read-only scan)."""
    async with uow:
        if await uow.trips.get(trip_id) is None:
            raise NotFoundError(f"Trip {trip_id} not found")
        conflicts = await list_conflicts(uow, trip_id, settings.conflict_scan_max_comments)
    return ok(conflicts)


@router.patch("/{comment_id}", response_model=Envelope[Comment])
async def patch_comment(
    comment_id: uuid.UUID,
    body: CommentUpdate,
    ctx: CurrentContext,
    uow: UnitOfWorkDep,
    settings: SettingsDep,
) -> Envelope[Comment]:
    """Edit a pending comment or mark it resolved/deleted."""
    async with uow:
        comment = await update_comment(
            uow, comment_id, body, ctx.user_id, settings.conflict_scan_max_comments
        )
    return ok(comment)


@router.delete("/{comment_id}", response_model=Envelope[Comment])
async def remove_comment(
    comment_id: uuid.UUID, ctx: CurrentContext, uow: UnitOfWorkDep, settings: SettingsDep
) -> Envelope[Comment]:
    """Soft delete a pending comment."""
    async with uow:
        comment = await delete_comment(
            uow, comment_id, ctx.user_id, settings.conflict_scan_max_comments
        )
    return ok(comment)
