"""Pydantic schemas for questions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ortoqbank.models.question import MAX_OPTIONS, MIN_OPTIONS

QUESTION_TEXT_MAX_LENGTH = 20000
EXPLANATION_MAX_LENGTH = 40000
OPTION_MAX_LENGTH = 2000


def _check_options(options: list[str] | None) -> list[str] | None:
    if options is None:
        return options
    if any(not option.strip() for option in options):
        raise ValueError("Options must be non-empty")
    if any(len(option) > OPTION_MAX_LENGTH for option in options):
        raise ValueError(f"Options must be at most {OPTION_MAX_LENGTH} characters")
    return options


class QuestionCreate(BaseModel):
    """Schema for creating a question.

    Taxonomy references may be given at any level; the most specific one
    determines the others.
    """

    question_text: str = Field(..., min_length=1, max_length=QUESTION_TEXT_MAX_LENGTH)
    explanation_text: str = Field("", max_length=EXPLANATION_MAX_LENGTH)
    options: list[str] = Field(..., min_length=MIN_OPTIONS, max_length=MAX_OPTIONS)
    correct_option_index: int = Field(..., ge=0)
    image_urls: list[str] = Field(default_factory=list)
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None

    @field_validator("options")
    @classmethod
    def options_non_empty(cls, value: list[str] | None) -> list[str] | None:
        return _check_options(value)

    @model_validator(mode="after")
    def correct_index_in_range(self) -> "QuestionCreate":
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct_option_index must point at one of the options")
        return self


class QuestionUpdate(BaseModel):
    """Schema for updating a question (all fields optional)."""

    question_text: str | None = Field(None, min_length=1, max_length=QUESTION_TEXT_MAX_LENGTH)
    explanation_text: str | None = Field(None, max_length=EXPLANATION_MAX_LENGTH)
    options: list[str] | None = Field(None, min_length=MIN_OPTIONS, max_length=MAX_OPTIONS)
    correct_option_index: int | None = Field(None, ge=0)
    image_urls: list[str] | None = None
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None

    @field_validator("options")
    @classmethod
    def options_non_empty(cls, value: list[str] | None) -> list[str] | None:
        return _check_options(value)


class QuestionOut(BaseModel):
    """Admin view of a question."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    question_text: str
    explanation_text: str
    options: list[str]
    correct_option_index: int
    image_urls: list[str]
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None
    theme_name: str | None = None
    subtheme_name: str | None = None
    group_name: str | None = None
    taxonomy_path_ids: list[int]
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class QuestionStudentOut(BaseModel):
    """Student view of a question; the answer comes back on submission."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    question_text: str
    options: list[str]
    image_urls: list[str]
    taxonomy_theme_id: int | None = None
    taxonomy_subtheme_id: int | None = None
    taxonomy_group_id: int | None = None
    theme_name: str | None = None
    subtheme_name: str | None = None
    group_name: str | None = None


class BackfillRequest(BaseModel):
    batch_size: int = Field(100, ge=1, le=1000)
    cursor: int | None = None
    dry_run: bool = False


class BackfillResult(BaseModel):
    processed: int
    updated: int
    errors: list[str] = Field(default_factory=list)
    next_cursor: int | None = None
    is_done: bool
    dry_run: bool
