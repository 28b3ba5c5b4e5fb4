"""Add (name, class) identity snapshot to every student-owned table

Revision ID: 002
Revises: 001
Create Date: 2026-10-05 00:00:00.000000

A roster import deletes and recreates every student, and the owner FKs fall
to NULL. Without a stored copy of the student's name and class there is no
way to find the new owner, so each owned table keeps one. Existing rows are
backfilled from their current owner, keeping any name a parent already
submitted. Rows orphaned before this migration stay broken and must be
re-assigned by hand.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# table -> (owner column, name column, class column)
SNAPSHOT_COLUMNS = {
    "parent_children": ("student_id", "child_name_submitted", "class_id"),
    "absence_requests": ("student_id", "student_name", "class_id"),
    "lesson_evaluations": ("eval_student_id", "student_name", "stored_class_id"),
}


def upgrade() -> None:
    op.add_column("parent_children", sa.Column("class_id", sa.String(64), nullable=True))
    op.add_column("absence_requests", sa.Column("student_name", sa.String(200), nullable=True))
    op.add_column("absence_requests", sa.Column("class_id", sa.String(64), nullable=True))
    op.add_column("lesson_evaluations", sa.Column("student_name", sa.String(200), nullable=True))
    op.add_column(
        "lesson_evaluations", sa.Column("stored_class_id", sa.String(64), nullable=True)
    )
    op.add_column(
        "lesson_evaluations", sa.Column("stored_category", sa.String(4), nullable=True)
    )

    for table, (owner, name_col, class_col) in SNAPSHOT_COLUMNS.items():
        op.execute(
            f"UPDATE {table} SET "
            f"{name_col} = COALESCE(NULLIF(TRIM({name_col}), ''), "
            f"(SELECT s.name FROM students s WHERE s.id = {table}.{owner})), "
            f"{class_col} = (SELECT s.class_id FROM students s WHERE s.id = {table}.{owner}) "
            f"WHERE {owner} IS NOT NULL"
        )
    op.execute(
        "UPDATE lesson_evaluations SET stored_category = category WHERE category IS NOT NULL"
    )


def downgrade() -> None:
    op.drop_column("lesson_evaluations", "stored_category")
    op.drop_column("lesson_evaluations", "stored_class_id")
    op.drop_column("lesson_evaluations", "student_name")
    op.drop_column("absence_requests", "class_id")
    op.drop_column("absence_requests", "student_name")
    op.drop_column("parent_children", "class_id")
