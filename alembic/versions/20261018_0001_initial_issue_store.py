"""Initial issue and repository tracking schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("github_id", sa.Integer(), nullable=False),
        sa.Column("repo_name", sa.String(), nullable=False),
        sa.Column("repo_full_name", sa.String(), nullable=False),
        sa.Column("issue_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("html_url", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="new"),
        sa.Column("branch_name", sa.String(), nullable=True),
        sa.Column("task_file_path", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "repo_full_name",
            "issue_number",
            name="uq_issues_repo_full_name_issue_number",
        ),
    )
    op.create_index("ix_issues_github_id", "issues", ["github_id"], unique=True)
    op.create_index("ix_issues_repo_name", "issues", ["repo_name"], unique=False)
    op.create_index("ix_issues_repo_full_name", "issues", ["repo_full_name"], unique=False)
    op.create_index("ix_issues_status", "issues", ["status"], unique=False)

    op.create_table(
        "repositories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("clone_url", sa.String(), nullable=False),
        sa.Column("local_path", sa.String(), nullable=True),
        sa.Column("last_cloned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_repositories_name", "repositories", ["name"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_repositories_name", table_name="repositories")
    op.drop_table("repositories")
    op.drop_index("ix_issues_status", table_name="issues")
    op.drop_index("ix_issues_repo_full_name", table_name="issues")
    op.drop_index("ix_issues_repo_name", table_name="issues")
    op.drop_index("ix_issues_github_id", table_name="issues")
    op.drop_table("issues")
