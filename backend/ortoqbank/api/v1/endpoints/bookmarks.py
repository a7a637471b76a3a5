"""Bookmark endpoints."""

from fastapi import APIRouter, status

from ortoqbank.core.dependencies import DB, Context, CurrentUser
from ortoqbank.schemas.progress import (
    BookmarkStatusOut,
    BookmarkStatusRequest,
    BookmarkToggleOut,
)
from ortoqbank.services import progress

router = APIRouter()


@router.post("/status", response_model=BookmarkStatusOut)
def bookmark_status(body: BookmarkStatusRequest, db: DB, current_user: CurrentUser):
    statuses = progress.get_bookmark_status(db, current_user.id, body.question_ids)
    return BookmarkStatusOut(statuses=statuses)


@router.post("/{question_id}/toggle", response_model=BookmarkToggleOut)
def toggle_bookmark(question_id: int, ctx: Context, current_user: CurrentUser):
    is_bookmarked = progress.toggle_bookmark(ctx, current_user.id, question_id)
    return BookmarkToggleOut(question_id=question_id, is_bookmarked=is_bookmarked)


@router.put("/{question_id}", response_model=BookmarkToggleOut)
def add_bookmark(question_id: int, ctx: Context, current_user: CurrentUser):
    """Idempotent: bookmarking twice keeps one bookmark."""
    progress.add_bookmark(ctx, current_user.id, question_id)
    return BookmarkToggleOut(question_id=question_id, is_bookmarked=True)


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_bookmark(question_id: int, ctx: Context, current_user: CurrentUser):
    progress.remove_bookmark(ctx, current_user.id, question_id)
