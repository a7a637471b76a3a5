"""Student question endpoints: counts, reads, answers and status."""

from fastapi import APIRouter

from ortoqbank.core.dependencies import DB, Context, CurrentUser
from ortoqbank.schemas.progress import (
    AnswerResult,
    AnswerSubmit,
    CountLiveRequest,
    CountOut,
    QuestionCountsOut,
    QuestionStatusOut,
    ThemeCountOut,
)
from ortoqbank.schemas.question import QuestionStudentOut
from ortoqbank.services import progress, question_filtering, questions

router = APIRouter()


@router.post("/count-live", response_model=CountOut)
def count_live(body: CountLiveRequest, ctx: Context, current_user: CurrentUser):
    """Count questions for a taxonomy selection and interaction filter.

    A user-scoped filter without any taxonomy selection is rejected with
    INVALID_FILTER_COMBINATION.
    """
    count = question_filtering.count_live(
        ctx, body.taxonomy_ids, current_user.id, body.question_mode
    )
    return CountOut(count=count)


@router.get("/counts", response_model=QuestionCountsOut)
def get_counts(ctx: Context, current_user: CurrentUser):
    return question_filtering.get_all_question_counts(ctx, current_user.id)


@router.get("/theme-counts", response_model=list[ThemeCountOut])
def get_theme_counts(ctx: Context, current_user: CurrentUser):
    return question_filtering.get_theme_question_counts(ctx)


@router.get("/{question_id}", response_model=QuestionStudentOut)
def get_question(question_id: int, db: DB, current_user: CurrentUser):
    return questions.get_question(db, question_id)


@router.post("/{question_id}/answers", response_model=AnswerResult)
def submit_answer(question_id: int, body: AnswerSubmit, ctx: Context, current_user: CurrentUser):
    return progress.record_answer(ctx, current_user.id, question_id, body.selected_option_index)


@router.get("/{question_id}/status", response_model=QuestionStatusOut)
def get_status(question_id: int, db: DB, current_user: CurrentUser):
    return progress.get_question_status(db, current_user.id, question_id)
