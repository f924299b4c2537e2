"""expenses and categories

Revision ID: 202601101200
Revises:
Create Date: 2026-01-10 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202601101200"
down_revision = None
branch_labels = None
depends_on = None

DEFAULT_CATEGORIES = [
    ("food", "#E4572E"),
    ("groceries", "#76B041"),
    ("transport", "#17BEBB"),
    ("misc", "#9A8C98"),
]


def upgrade():
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=9)),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False
        ),
    )
    op.create_index("ix_expenses_date", "expenses", ["date"])
    op.create_index(
        "ix_expenses_category_date", "expenses", ["category_id", "date"]
    )

    op.bulk_insert(
        categories,
        [{"name": name, "color": color} for name, color in DEFAULT_CATEGORIES],
    )


def downgrade():
    op.drop_index("ix_expenses_category_date", table_name="expenses")
    op.drop_index("ix_expenses_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("categories")
