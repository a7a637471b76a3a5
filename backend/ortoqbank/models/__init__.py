"""Database models."""

from ortoqbank.models.aggregate import AggregateConfig, AggregateNode, AggregateTree
from ortoqbank.models.question import Question
from ortoqbank.models.quiz import (
    CustomQuiz,
    PresetQuiz,
    PresetQuizCategory,
    QuestionMode,
    QuizKind,
    QuizMode,
    QuizSession,
)
from ortoqbank.models.taxonomy import TaxonomyNode, TaxonomyType
from ortoqbank.models.user import User, UserRole
from ortoqbank.models.user_stats import UserBookmark, UserQuestionStat

__all__ = [
    "AggregateConfig",
    "AggregateNode",
    "AggregateTree",
    "CustomQuiz",
    "PresetQuiz",
    "PresetQuizCategory",
    "Question",
    "QuestionMode",
    "QuizKind",
    "QuizSession",
    "TaxonomyNode",
    "TaxonomyType",
    "QuizMode",
    "User",
    "UserBookmark",
    "UserQuestionStat",
]
