"""create profiles and leads

Revision ID: 0001_profiles_leads
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_profiles_leads"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="bda"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
        sa.CheckConstraint("role IN ('admin', 'bda')", name="ck_profile_role"),
    )

    op.create_table(
        "leads",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("industry", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("service", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="new"),
        sa.Column(
            "assigned_agent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("follow_up_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "temperature", sa.String(length=10), nullable=False, server_default="unset"
        ),
        sa.Column(
            "interests",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("remarks", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "whatsapp_sent", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "quotation_sent", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "sample_work_sent", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "status IN ('new', 'contacted', 'qualified', 'proposal', "
            "'negotiation', 'closed_won', 'closed_lost')",
            name="ck_lead_status",
        ),
        sa.CheckConstraint(
            "temperature IN ('hot', 'warm', 'cold', 'unset')",
            name="ck_lead_temperature",
        ),
    )
    op.create_index("idx_leads_assigned_agent", "leads", ["assigned_agent_id"])
    op.create_index("idx_leads_follow_up_date", "leads", ["follow_up_date"])
    op.create_index("idx_leads_updated_at", "leads", ["updated_at"])


def downgrade() -> None:
    op.drop_index("idx_leads_updated_at", table_name="leads")
    op.drop_index("idx_leads_follow_up_date", table_name="leads")
    op.drop_index("idx_leads_assigned_agent", table_name="leads")
    op.drop_table("leads")
    op.drop_table("profiles")
