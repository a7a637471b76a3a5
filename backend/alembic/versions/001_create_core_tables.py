"""Create core tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

taxonomy_type = sa.Enum("theme", "subtheme", "group", name="taxonomy_type")
preset_quiz_category = sa.Enum("trilha", "simulado", name="preset_quiz_category")
quiz_test_mode = sa.Enum("study", "exam", name="quiz_test_mode")
quiz_question_mode = sa.Enum(
    "all", "unanswered", "incorrect", "bookmarked", name="quiz_question_mode"
)


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("image_url", sa.String(1024), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "taxonomy",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", taxonomy_type, nullable=False),
        sa.Column("prefix", sa.String(50), nullable=True),
        sa.Column(
            "parent_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("path_ids", sa.JSON(), nullable=False),
        sa.Column("path_names", sa.JSON(), nullable=False),
        *_timestamps(with_updated=False),
    )
    op.create_index("by_type", "taxonomy", ["type"])
    op.create_index("by_parent", "taxonomy", ["parent_id"])
    op.create_index("by_type_parent_name", "taxonomy", ["type", "parent_id", "name"])

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("explanation_text", sa.Text(), nullable=False),
        sa.Column("options", sa.JSON(), nullable=False),
        sa.Column("correct_option_index", sa.Integer(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column(
            "taxonomy_theme_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "taxonomy_subtheme_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "taxonomy_group_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("theme_name", sa.String(255), nullable=True),
        sa.Column("subtheme_name", sa.String(255), nullable=True),
        sa.Column("group_name", sa.String(255), nullable=True),
        sa.Column("taxonomy_path_ids", sa.JSON(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("correct_option_index >= 0", name="ck_questions_correct_index"),
    )
    op.create_index("by_taxonomy_theme", "questions", ["taxonomy_theme_id"])
    op.create_index("by_taxonomy_subtheme", "questions", ["taxonomy_subtheme_id"])
    op.create_index("by_taxonomy_group", "questions", ["taxonomy_group_id"])

    op.create_table(
        "user_question_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(255), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "question_id",
            sa.Integer(),
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("has_answered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_incorrect", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "question_id", name="uq_user_question_stat"),
        sa.CheckConstraint(
            "NOT is_incorrect OR has_answered", name="ck_incorrect_implies_answered"
        ),
    )
    op.create_index("by_user_answered", "user_question_stats", ["user_id", "has_answered"])
    op.create_index("by_user_incorrect", "user_question_stats", ["user_id", "is_incorrect"])

    op.create_table(
        "user_bookmarks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(255), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "question_id",
            sa.Integer(),
            sa.ForeignKey("questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("user_id", "question_id", name="uq_user_bookmark"),
    )
    op.create_index("by_user_bookmark", "user_bookmarks", ["user_id"])

    op.create_table(
        "aggregate_configs",
        sa.Column("aggregate_name", sa.String(100), primary_key=True),
        sa.Column("max_node_size", sa.Integer(), nullable=False),
        sa.Column("root_lazy", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "cleared_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_table(
        "aggregate_trees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("aggregate_name", sa.String(100), nullable=False),
        sa.Column("namespace", sa.String(255), nullable=False),
        sa.Column("root_id", sa.String(36), nullable=False),
        sa.Column("max_node_size", sa.Integer(), nullable=False),
        sa.Column("root_lazy", sa.Boolean(), nullable=False),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("aggregate_name", "namespace", name="uq_aggregate_tree_namespace"),
    )
    op.create_table(
        "aggregate_nodes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "tree_id",
            sa.Integer(),
            sa.ForeignKey("aggregate_trees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtrees", sa.JSON(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=True),
    )
    op.create_index("by_tree", "aggregate_nodes", ["tree_id"])

    op.create_table(
        "preset_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", preset_quiz_category, nullable=False),
        sa.Column(
            "taxonomy_theme_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "taxonomy_subtheme_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "taxonomy_group_id",
            sa.Integer(),
            sa.ForeignKey("taxonomy.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("question_ids", sa.JSON(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("by_category", "preset_quizzes", ["category"])

    op.create_table(
        "custom_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "author_id",
            sa.String(255),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("test_mode", quiz_test_mode, nullable=False),
        sa.Column("question_mode", quiz_question_mode, nullable=False),
        sa.Column("selected_taxonomy_ids", sa.JSON(), nullable=False),
        sa.Column("question_ids", sa.JSON(), nullable=False),
        *_timestamps(with_updated=False),
    )
    op.create_index("by_author", "custom_quizzes", ["author_id"])


def downgrade() -> None:
    op.drop_index("by_author", table_name="custom_quizzes")
    op.drop_table("custom_quizzes")
    op.drop_index("by_category", table_name="preset_quizzes")
    op.drop_table("preset_quizzes")
    op.drop_index("by_tree", table_name="aggregate_nodes")
    op.drop_table("aggregate_nodes")
    op.drop_table("aggregate_trees")
    op.drop_table("aggregate_configs")
    op.drop_index("by_user_bookmark", table_name="user_bookmarks")
    op.drop_table("user_bookmarks")
    op.drop_index("by_user_incorrect", table_name="user_question_stats")
    op.drop_index("by_user_answered", table_name="user_question_stats")
    op.drop_table("user_question_stats")
    op.drop_index("by_taxonomy_group", table_name="questions")
    op.drop_index("by_taxonomy_subtheme", table_name="questions")
    op.drop_index("by_taxonomy_theme", table_name="questions")
    op.drop_table("questions")
    op.drop_index("by_type_parent_name", table_name="taxonomy")
    op.drop_index("by_parent", table_name="taxonomy")
    op.drop_index("by_type", table_name="taxonomy")
    op.drop_table("taxonomy")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (quiz_question_mode, quiz_test_mode, preset_quiz_category, taxonomy_type):
        enum_type.drop(bind, checkfirst=True)
