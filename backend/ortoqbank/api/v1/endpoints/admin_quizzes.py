"""Admin preset quiz endpoints."""

from fastapi import APIRouter, status

from ortoqbank.core.dependencies import DB, AdminUser
from ortoqbank.models.quiz import PresetQuizCategory
from ortoqbank.schemas.quiz import PresetQuizCreate, PresetQuizOut, PresetQuizUpdate
from ortoqbank.services import quizzes

router = APIRouter()


@router.post("", response_model=PresetQuizOut, status_code=status.HTTP_201_CREATED)
def create_preset_quiz(body: PresetQuizCreate, db: DB, admin: AdminUser):
    return quizzes.create_preset_quiz(db, body)


@router.get("", response_model=list[PresetQuizOut])
def list_preset_quizzes(db: DB, admin: AdminUser, category: PresetQuizCategory | None = None):
    """All preset quizzes, including unpublished ones."""
    return quizzes.list_preset_quizzes(db, category=category, public_only=False)


@router.patch("/{quiz_id}", response_model=PresetQuizOut)
def update_preset_quiz(quiz_id: int, body: PresetQuizUpdate, db: DB, admin: AdminUser):
    return quizzes.update_preset_quiz(db, quiz_id, body)


@router.post("/{quiz_id}/questions/{question_id}", response_model=PresetQuizOut)
def add_question(quiz_id: int, question_id: int, db: DB, admin: AdminUser):
    return quizzes.add_question_to_preset_quiz(db, quiz_id, question_id)


@router.delete("/{quiz_id}/questions/{question_id}", response_model=PresetQuizOut)
def remove_question(quiz_id: int, question_id: int, db: DB, admin: AdminUser):
    return quizzes.remove_question_from_preset_quiz(db, quiz_id, question_id)
