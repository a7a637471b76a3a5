"""Admin question endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from ortoqbank.common.pagination import PaginatedResponse, PaginationParams, pagination_params
from ortoqbank.core.dependencies import DB, AdminUser, Context
from ortoqbank.schemas.question import (
    BackfillRequest,
    BackfillResult,
    QuestionCreate,
    QuestionOut,
    QuestionUpdate,
)
from ortoqbank.services import migration, questions

router = APIRouter()


@router.post("", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(body: QuestionCreate, ctx: Context, admin: AdminUser):
    return questions.create_question(ctx, body)


@router.get("", response_model=PaginatedResponse[QuestionOut])
def list_questions(
    db: DB,
    admin: AdminUser,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    taxonomy_id: int | None = None,
    include_archived: bool = False,
):
    items, total = questions.list_questions(
        db,
        offset=pagination.offset,
        limit=pagination.page_size,
        taxonomy_id=taxonomy_id,
        include_archived=include_archived,
    )
    return PaginatedResponse[QuestionOut](
        items=[QuestionOut.model_validate(item) for item in items],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.post("/backfill-taxonomy", response_model=BackfillResult)
def backfill_taxonomy(body: BackfillRequest, ctx: Context, admin: AdminUser):
    """Process one batch; repeat with ``next_cursor`` until ``is_done``."""
    return migration.backfill_question_taxonomy(
        ctx, batch_size=body.batch_size, cursor=body.cursor, dry_run=body.dry_run
    )


@router.get("/{question_id}", response_model=QuestionOut)
def get_question(question_id: int, db: DB, admin: AdminUser):
    return questions.get_question(db, question_id, include_archived=True)


@router.patch("/{question_id}", response_model=QuestionOut)
def update_question(question_id: int, body: QuestionUpdate, ctx: Context, admin: AdminUser):
    return questions.update_question(ctx, question_id, body)


@router.post("/{question_id}/archive", response_model=QuestionOut)
def archive_question(question_id: int, ctx: Context, admin: AdminUser):
    return questions.archive_question(ctx, question_id)


@router.post("/{question_id}/restore", response_model=QuestionOut)
def restore_question(question_id: int, ctx: Context, admin: AdminUser):
    return questions.restore_question(ctx, question_id)
