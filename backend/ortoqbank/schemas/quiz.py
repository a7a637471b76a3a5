"""Pydantic schemas for preset and custom quizzes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ortoqbank.models.quiz import PresetQuizCategory, QuestionMode, QuizMode

NAME_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2000


class PresetQuizCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = Field("", max_length=DESCRIPTION_MAX_LENGTH)
    category: PresetQuizCategory
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None
    question_ids: list[int] = Field(default_factory=list)
    is_public: bool = False
    display_order: int | None = None


class PresetQuizUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=NAME_MAX_LENGTH)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    category: PresetQuizCategory | None = None
    is_public: bool | None = None
    display_order: int | None = None


class PresetQuizOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    category: PresetQuizCategory
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None
    question_ids: list[int]
    is_public: bool
    display_order: int | None = None
    created_at: datetime


class CustomQuizCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = Field("", max_length=DESCRIPTION_MAX_LENGTH)
    test_mode: QuizMode = QuizMode.STUDY
    question_mode: QuestionMode = QuestionMode.ALL
    taxonomy_ids: list[int] = Field(default_factory=list)
    num_questions: int = Field(30, ge=1)


class CustomQuizOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    author_id: str
    test_mode: QuizMode
    question_mode: QuestionMode
    selected_taxonomy_ids: list[int]
    question_ids: list[int]
    created_at: datetime
