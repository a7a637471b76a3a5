"""Student quiz endpoints: preset quiz browsing and custom quiz creation."""

from fastapi import APIRouter, status

from ortoqbank.core.dependencies import DB, Context, CurrentUser
from ortoqbank.models.quiz import PresetQuizCategory, QuestionMode
from ortoqbank.schemas.progress import CountOut
from ortoqbank.schemas.quiz import CustomQuizCreate, CustomQuizOut, PresetQuizOut
from ortoqbank.services import quizzes

router = APIRouter()


@router.get("/preset-quizzes", response_model=list[PresetQuizOut])
def list_preset_quizzes(
    db: DB, current_user: CurrentUser, category: PresetQuizCategory | None = None
):
    return quizzes.list_preset_quizzes(db, category=category, public_only=True)


@router.get("/preset-quizzes/{quiz_id}", response_model=PresetQuizOut)
def get_preset_quiz(quiz_id: int, db: DB, current_user: CurrentUser):
    return quizzes.get_preset_quiz(db, quiz_id, public_only=True)


@router.get("/preset-quizzes/{quiz_id}/count", response_model=CountOut)
def count_preset_quiz(
    quiz_id: int,
    db: DB,
    current_user: CurrentUser,
    question_mode: QuestionMode = QuestionMode.ALL,
):
    count = quizzes.count_preset_quiz_questions(db, quiz_id, current_user.id, question_mode)
    return CountOut(count=count)


@router.post("/custom-quizzes", response_model=CustomQuizOut, status_code=status.HTTP_201_CREATED)
def create_custom_quiz(body: CustomQuizCreate, ctx: Context, current_user: CurrentUser):
    return quizzes.create_custom_quiz(ctx, current_user.id, body)


@router.get("/custom-quizzes", response_model=list[CustomQuizOut])
def list_custom_quizzes(db: DB, current_user: CurrentUser):
    return quizzes.list_custom_quizzes(db, current_user.id)


@router.get("/custom-quizzes/{quiz_id}", response_model=CustomQuizOut)
def get_custom_quiz(quiz_id: int, db: DB, current_user: CurrentUser):
    return quizzes.get_custom_quiz(db, current_user.id, quiz_id)
