"""create users, inspections and hazards

Revision ID: 4f2a9c1d7e10
Revises:
Create Date: 2026-10-19 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ("hse_officer", "project_manager", "supervisor", "auditor", "admin")
RISK_LEVELS = ("Low", "Medium", "High", "Extreme")
STATUSES = ("pending", "analyzing", "completed", "failed")
CATEGORIES = (
    "Physical", "Chemical", "Biological", "Ergonomic", "Electrical",
    "Fire", "Mechanical", "Environmental", "Psychosocial",
)


def _enum(values, name, length):
    # stored as VARCHAR with a CHECK, matching native_enum=False on the models
    return sa.Enum(*values, name=name, native_enum=False, length=length)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", _enum(ROLES, "role", 32), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "inspections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("project_name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("location_accuracy", sa.Float(), nullable=True),
        sa.Column("inspection_date", sa.Date(), nullable=False),
        sa.Column("inspector_name", sa.String(), nullable=True),
        sa.Column("department", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("image_path", sa.String(), nullable=False),
        sa.Column("image_filename", sa.String(), nullable=True),
        sa.Column("status", _enum(STATUSES, "inspectionstatus", 16), nullable=False),
        sa.Column("overall_risk_level", _enum(RISK_LEVELS, "risklevel", 16), nullable=True),
        sa.Column("ai_summary", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inspections_user_id", "inspections", ["user_id"])
    op.create_index("ix_inspections_inspection_date", "inspections", ["inspection_date"])
    op.create_index("ix_inspections_status", "inspections", ["status"])
    op.create_index("ix_inspections_created_at", "inspections", ["created_at"])

    op.create_table(
        "hazards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "inspection_id",
            sa.Integer(),
            sa.ForeignKey("inspections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("category", _enum(CATEGORIES, "hazardcategory", 32), nullable=False),
        sa.Column("hazard_type", sa.String(), nullable=True),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("likelihood", sa.Integer(), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", _enum(RISK_LEVELS, "risklevel", 16), nullable=False),
        sa.Column("engineering_control", sa.String(), nullable=True),
        sa.Column("administrative_control", sa.String(), nullable=True),
        sa.Column("ppe_control", sa.String(), nullable=True),
        sa.Column("immediate_action", sa.String(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("severity BETWEEN 1 AND 5", name="ck_hazards_severity_range"),
        sa.CheckConstraint("likelihood BETWEEN 1 AND 5", name="ck_hazards_likelihood_range"),
    )
    op.create_index("ix_hazards_inspection_id", "hazards", ["inspection_id"])
    op.create_index("ix_hazards_risk_level", "hazards", ["risk_level"])


def downgrade() -> None:
    op.drop_index("ix_hazards_risk_level", table_name="hazards")
    op.drop_index("ix_hazards_inspection_id", table_name="hazards")
    op.drop_table("hazards")
    op.drop_index("ix_inspections_created_at", table_name="inspections")
    op.drop_index("ix_inspections_status", table_name="inspections")
    op.drop_index("ix_inspections_inspection_date", table_name="inspections")
    op.drop_index("ix_inspections_user_id", table_name="inspections")
    op.drop_table("inspections")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
