"""Pydantic schemas for quiz sessions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ortoqbank.models.quiz import QuizKind, QuizMode


class QuizSessionStart(BaseModel):
    mode: QuizMode | None = None


class AnswerFeedbackOut(BaseModel):
    question_id: int
    is_correct: bool
    explanation: str


class QuizSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_kind: QuizKind
    quiz_id: int
    mode: QuizMode
    question_ids: list[int]
    current_question_index: int
    answers: list[int] = Field(default_factory=list)
    answer_feedback: list[AnswerFeedbackOut] = Field(default_factory=list)
    is_complete: bool
    total_questions: int
    correct_count: int
    completed_at: datetime | None = None
    created_at: datetime


class SessionAnswerResult(BaseModel):
    session_id: int
    question_id: int
    selected_option_index: int
    correct_option_index: int
    is_correct: bool
    explanation_text: str
    next_question_index: int
    is_complete: bool
