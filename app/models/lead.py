from sqlalchemy import (
    Boolean,
    Column,
    String,
    Text,
    DateTime,
    CheckConstraint,
    ForeignKey,
    Index,
    ARRAY,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text

from app.core.constants import (
    LEAD_STATUS_CHECK_CLAUSE,
    LEAD_TEMPERATURE_CHECK_CLAUSE,
)


class Lead(Base):
    """Sales prospect tracked through the seven-step status pipeline.

    A lead is either unassigned or worked by exactly one BDA.  The
    optional ``follow_up_date`` places it on that agent's calendar, and
    ``updated_at`` is refreshed on every mutation because the dashboards
    order their "recently updated" views by it.
    """

    __tablename__ = "leads"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=False, server_default="")
    email = Column(String(255), nullable=False, server_default="")
    industry = Column(String(100), nullable=False, server_default="")
    service = Column(String(100), nullable=False, server_default="")
    lead_type = Column("type", String(100), nullable=False, server_default="")
    status = Column(String(50), nullable=False, server_default="new")
    assigned_agent_id = Column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    follow_up_date = Column(DateTime(timezone=True), nullable=True)
    temperature = Column(String(10), nullable=False, server_default="unset")
    interests = Column(ARRAY(String), nullable=False, server_default="{}")
    remarks = Column(Text, nullable=False, server_default="")
    whatsapp_sent = Column(Boolean, nullable=False, server_default=text("false"))
    email_sent = Column(Boolean, nullable=False, server_default=text("false"))
    quotation_sent = Column(Boolean, nullable=False, server_default=text("false"))
    sample_work_sent = Column(Boolean, nullable=False, server_default=text("false"))
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    assigned_agent = relationship("Profile", back_populates="leads")

    __table_args__ = (
        Index("idx_leads_assigned_agent", "assigned_agent_id"),
        Index("idx_leads_follow_up_date", "follow_up_date"),
        Index("idx_leads_updated_at", "updated_at"),
        CheckConstraint(LEAD_STATUS_CHECK_CLAUSE, name="ck_lead_status"),
        CheckConstraint(LEAD_TEMPERATURE_CHECK_CLAUSE, name="ck_lead_temperature"),
    )
