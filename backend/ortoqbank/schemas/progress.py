"""Pydantic schemas for counting, answers, bookmarks and stats."""

from datetime import datetime

from pydantic import BaseModel, Field

from ortoqbank.models.quiz import QuestionMode

MAX_STATUS_QUESTION_IDS = 500


class CountLiveRequest(BaseModel):
    taxonomy_ids: list[int] = Field(default_factory=list)
    question_mode: QuestionMode = QuestionMode.ALL


class CountOut(BaseModel):
    count: int


class QuestionCountsOut(BaseModel):
    all: int
    unanswered: int
    incorrect: int
    bookmarked: int


class ThemeCountOut(BaseModel):
    theme_id: int
    theme_name: str
    count: int


class AnswerSubmit(BaseModel):
    selected_option_index: int = Field(..., ge=0)


class AnswerResult(BaseModel):
    question_id: int
    selected_option_index: int
    correct_option_index: int
    is_correct: bool
    explanation_text: str


class QuestionStatusOut(BaseModel):
    question_id: int
    has_answered: bool
    is_incorrect: bool
    is_bookmarked: bool
    answered_at: datetime | None = None


class UserStatsOut(BaseModel):
    total_questions: int
    total_answered: int
    total_correct: int
    total_incorrect: int
    total_bookmarked: int
    correct_percentage: float


class BookmarkToggleOut(BaseModel):
    question_id: int
    is_bookmarked: bool


class BookmarkStatusRequest(BaseModel):
    question_ids: list[int] = Field(..., max_length=MAX_STATUS_QUESTION_IDS)


class BookmarkStatusOut(BaseModel):
    statuses: dict[int, bool]


class ThemeStatsOut(BaseModel):
    theme_id: int
    theme_name: str
    total: int
    correct: int
    percentage: float


class AnsweredQuestionOut(BaseModel):
    question_id: int
    question_text: str
    theme_name: str | None = None
    is_incorrect: bool
    answered_at: datetime | None = None
