"""Quiz session endpoints, addressed by quiz kind and quiz id."""

from fastapi import APIRouter, status

from ortoqbank.core.dependencies import DB, Context, CurrentUser
from ortoqbank.models.quiz import QuizKind
from ortoqbank.schemas.progress import AnswerSubmit
from ortoqbank.schemas.quiz_session import QuizSessionOut, QuizSessionStart, SessionAnswerResult
from ortoqbank.services import quiz_sessions

router = APIRouter()


@router.get("/{kind}/{quiz_id}/current", response_model=QuizSessionOut | None)
def current_session(kind: QuizKind, quiz_id: int, db: DB, current_user: CurrentUser):
    return quiz_sessions.get_current_session(db, current_user.id, kind, quiz_id)


@router.post(
    "/{kind}/{quiz_id}/start", response_model=QuizSessionOut, status_code=status.HTTP_201_CREATED
)
def start_session(
    kind: QuizKind,
    quiz_id: int,
    db: DB,
    current_user: CurrentUser,
    body: QuizSessionStart | None = None,
):
    mode = body.mode if body else None
    return quiz_sessions.start_quiz_session(db, current_user.id, kind, quiz_id, mode)


@router.post("/{kind}/{quiz_id}/answers", response_model=SessionAnswerResult)
def submit_answer(
    kind: QuizKind, quiz_id: int, body: AnswerSubmit, ctx: Context, current_user: CurrentUser
):
    return quiz_sessions.submit_answer(
        ctx, current_user.id, kind, quiz_id, body.selected_option_index
    )


@router.post("/{kind}/{quiz_id}/complete", response_model=QuizSessionOut)
def complete_session(kind: QuizKind, quiz_id: int, db: DB, current_user: CurrentUser):
    return quiz_sessions.complete_quiz_session(db, current_user.id, kind, quiz_id)
