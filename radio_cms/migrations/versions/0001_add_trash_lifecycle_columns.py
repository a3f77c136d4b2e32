"""Add trash lifecycle columns to content tables

Revision ID: 0001
Revises:
Create Date: 2024-02-12 00:00:00

Adds deleted_at, deleted_by and protected to the five content tables, the
CHECK constraint keeping deleted_at and deleted_by paired, the partial index
on active rows and the index on deleted_at.

Content tables that do not exist yet are skipped; ``radio-cms db init``
creates them with the full schema. Parts of the schema that are already in
place are left alone, so databases created by ``db init`` before the
revision table existed upgrade cleanly.
"""

from typing import List, Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CONTENT_TABLES = ("articles", "shows", "episodes", "events", "resources")

DELETION_CONSISTENCY = (
    "(deleted_at IS NULL AND deleted_by IS NULL) OR "
    "(deleted_at IS NOT NULL AND deleted_by IS NOT NULL)"
)


def _lifecycle_columns() -> List[sa.Column]:
    return [
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(100), nullable=True),
        sa.Column(
            "protected", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
    ]


def upgrade() -> None:
    """Add lifecycle columns, the consistency check and the lifecycle indexes."""
    inspector = sa.inspect(op.get_bind())
    existing_tables = set(inspector.get_table_names())

    for table in CONTENT_TABLES:
        if table not in existing_tables:
            continue

        columns = {column["name"] for column in inspector.get_columns(table)}
        checks = {check["name"] for check in inspector.get_check_constraints(table)}
        indexes = {index["name"] for index in inspector.get_indexes(table)}

        missing = [c for c in _lifecycle_columns() if c.name not in columns]
        check_name = f"ck_{table}_deletion_consistency"

        if missing or check_name not in checks:
            with op.batch_alter_table(table) as batch_op:
                for column in missing:
                    batch_op.add_column(column)
                if check_name not in checks:
                    batch_op.create_check_constraint(check_name, DELETION_CONSISTENCY)

        if f"idx_{table}_active" not in indexes:
            op.create_index(
                f"idx_{table}_active",
                table,
                ["id"],
                postgresql_where=sa.text("deleted_at IS NULL"),
                sqlite_where=sa.text("deleted_at IS NULL"),
            )
        if f"idx_{table}_deleted_at" not in indexes:
            op.create_index(f"idx_{table}_deleted_at", table, ["deleted_at"])


def downgrade() -> None:
    """Remove the lifecycle indexes, the consistency check and the columns."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in CONTENT_TABLES:
        if table not in existing_tables:
            continue

        indexes = {index["name"] for index in inspector.get_indexes(table)}
        for name in (f"idx_{table}_active", f"idx_{table}_deleted_at"):
            if name in indexes:
                op.drop_index(name, table_name=table)

        check_name = f"ck_{table}_deletion_consistency"
        if bind.dialect.name == "sqlite":
            # Rebuild from the reflected table minus the check
            reflected = sa.Table(table, sa.MetaData(), autoload_with=bind)
            for constraint in list(reflected.constraints):
                if constraint.name == check_name:
                    reflected.constraints.discard(constraint)
            batch = op.batch_alter_table(table, copy_from=reflected)
        else:
            op.drop_constraint(check_name, table, type_="check")
            batch = op.batch_alter_table(table)

        with batch as batch_op:
            for name in ("protected", "deleted_by", "deleted_at"):
                batch_op.drop_column(name)
