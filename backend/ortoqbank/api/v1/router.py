"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from ortoqbank.api.v1.endpoints import (
    admin_aggregates,
    admin_questions,
    admin_quizzes,
    admin_taxonomy,
    bookmarks,
    health,
    questions,
    quiz_sessions,
    quizzes,
    stats,
    taxonomy,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(taxonomy.router, prefix="/taxonomy", tags=["Taxonomy"])
api_router.include_router(questions.router, prefix="/questions", tags=["Questions"])
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["Bookmarks"])
api_router.include_router(stats.router, prefix="/stats", tags=["Stats"])
api_router.include_router(quizzes.router, prefix="", tags=["Quizzes"])
api_router.include_router(quiz_sessions.router, prefix="/quiz-sessions", tags=["Quiz sessions"])

api_router.include_router(admin_taxonomy.router, prefix="/admin/taxonomy", tags=["Admin"])
api_router.include_router(admin_questions.router, prefix="/admin/questions", tags=["Admin"])
api_router.include_router(admin_quizzes.router, prefix="/admin/preset-quizzes", tags=["Admin"])
api_router.include_router(admin_aggregates.router, prefix="/admin/aggregates", tags=["Admin"])
