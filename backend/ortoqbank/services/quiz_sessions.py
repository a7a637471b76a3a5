"""Quiz sessions: one user's ordered walk through a preset or custom quiz.

A user holds at most one active session per quiz. Answers go through
``progress.record_answer`` so per-user stats and their aggregates move in
the same transaction as the session itself.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from ortoqbank.core.exceptions import IntegrityViolationError, NotFoundError
from ortoqbank.core.logging import get_logger
from ortoqbank.db.context import DataContext
from ortoqbank.models.quiz import QuizKind, QuizMode, QuizSession
from ortoqbank.services import progress, quizzes

logger = get_logger(__name__)


def _quiz_for(db: Session, user_id: str, kind: QuizKind, quiz_id: int):
    if kind == QuizKind.PRESET:
        return quizzes.get_preset_quiz(db, quiz_id, public_only=True)
    return quizzes.get_custom_quiz(db, user_id, quiz_id)


def get_current_session(
    db: Session, user_id: str, kind: QuizKind, quiz_id: int
) -> QuizSession | None:
    """Return the user's unfinished session for the quiz, if any."""
    return (
        db.query(QuizSession)
        .filter(
            QuizSession.user_id == user_id,
            QuizSession.quiz_kind == kind,
            QuizSession.quiz_id == quiz_id,
            QuizSession.is_complete.is_(False),
        )
        .order_by(QuizSession.id.desc())
        .first()
    )


def _require_active(db: Session, user_id: str, kind: QuizKind, quiz_id: int) -> QuizSession:
    session = get_current_session(db, user_id, kind, quiz_id)
    if session is None:
        raise NotFoundError(
            "No active quiz session found", {"quiz_kind": kind.value, "quiz_id": quiz_id}
        )
    return session


def start_quiz_session(
    db: Session, user_id: str, kind: QuizKind, quiz_id: int, mode: QuizMode | None = None
) -> QuizSession:
    """Open a session, or hand back the one already in progress.

    Custom quizzes default to the mode they were built with; preset quizzes
    default to study.
    """
    quiz = _quiz_for(db, user_id, kind, quiz_id)
    existing = get_current_session(db, user_id, kind, quiz_id)
    if existing is not None:
        return existing

    if not quiz.question_ids:
        raise IntegrityViolationError("Quiz has no questions", {"quiz_id": quiz_id})
    if mode is None:
        mode = quiz.test_mode if kind == QuizKind.CUSTOM else QuizMode.STUDY

    session = QuizSession(
        user_id=user_id,
        quiz_kind=kind,
        quiz_id=quiz_id,
        mode=mode,
        question_ids=list(quiz.question_ids),
        current_question_index=0,
        answers=[],
        answer_feedback=[],
        is_complete=False,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        "quiz_session_started",
        extra={
            "session_id": session.id,
            "user_id": user_id,
            "quiz_id": quiz_id,
            "kind": kind.value,
        },
    )
    return session


def submit_answer(
    ctx: DataContext, user_id: str, kind: QuizKind, quiz_id: int, selected_option_index: int
) -> dict[str, Any]:
    """Grade the answer to the current question and move the session forward.

    The session is not closed when the last question is answered; the
    returned ``is_complete`` only tells the caller it may now complete it.
    """
    db = ctx.db
    session = _require_active(db, user_id, kind, quiz_id)
    index = session.current_question_index
    if index >= session.total_questions:
        raise IntegrityViolationError(
            "All questions in this session are already answered",
            {"session_id": session.id, "current_question_index": index},
        )

    question_id = session.question_ids[index]
    result = progress.record_answer(
        ctx, user_id, question_id, selected_option_index, commit=False
    )

    session.answers = [*session.answers, selected_option_index]
    session.answer_feedback = [
        *session.answer_feedback,
        {
            "question_id": question_id,
            "is_correct": result["is_correct"],
            "explanation": result["explanation_text"],
        },
    ]
    session.current_question_index = index + 1
    db.commit()

    return {
        **result,
        "session_id": session.id,
        "next_question_index": index + 1,
        "is_complete": index + 1 >= session.total_questions,
    }


def complete_quiz_session(db: Session, user_id: str, kind: QuizKind, quiz_id: int) -> QuizSession:
    """Close the active session; unanswered questions simply stay unanswered."""
    session = _require_active(db, user_id, kind, quiz_id)
    session.is_complete = True
    session.completed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(session)
    logger.info(
        "quiz_session_completed",
        extra={
            "session_id": session.id,
            "user_id": user_id,
            "answered": len(session.answers),
            "correct": session.correct_count,
        },
    )
    return session
