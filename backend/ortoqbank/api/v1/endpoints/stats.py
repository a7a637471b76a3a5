"""User statistics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ortoqbank.common.pagination import PaginatedResponse, PaginationParams, pagination_params
from ortoqbank.core.dependencies import DB, Context, CurrentUser
from ortoqbank.schemas.progress import AnsweredQuestionOut, ThemeStatsOut, UserStatsOut
from ortoqbank.services import progress

router = APIRouter()


def _answered_page(
    db, user_id: str, pagination: PaginationParams, incorrect_only: bool
) -> PaginatedResponse[AnsweredQuestionOut]:
    items, total = progress.list_answered_questions(
        db,
        user_id,
        incorrect_only=incorrect_only,
        offset=pagination.offset,
        limit=pagination.page_size,
    )
    return PaginatedResponse[AnsweredQuestionOut](
        items=[AnsweredQuestionOut(**item) for item in items],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.get("/me", response_model=UserStatsOut)
def my_stats(ctx: Context, current_user: CurrentUser):
    return progress.get_user_stats_summary(ctx, current_user.id)


@router.get("/me/themes", response_model=list[ThemeStatsOut])
def my_theme_stats(db: DB, current_user: CurrentUser):
    return progress.get_user_theme_stats(db, current_user.id)


@router.get("/me/answered", response_model=PaginatedResponse[AnsweredQuestionOut])
def my_answered_questions(
    db: DB,
    current_user: CurrentUser,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
):
    return _answered_page(db, current_user.id, pagination, incorrect_only=False)


@router.get("/me/incorrect", response_model=PaginatedResponse[AnsweredQuestionOut])
def my_incorrect_questions(
    db: DB,
    current_user: CurrentUser,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
):
    return _answered_page(db, current_user.id, pagination, incorrect_only=True)
