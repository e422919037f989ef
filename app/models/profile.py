from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func

from app.core.constants import USER_ROLE_CHECK_CLAUSE


class Profile(Base):
    """Role record for an authenticated identity.

    The primary key is the hosted auth provider's user id; the role is
    never embedded in the credential and is looked up here after every
    sign-in.  A missing row is provisioned on first sight.
    """

    __tablename__ = "profiles"
    id = Column(UUID(as_uuid=True), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(200))
    role = Column(String(20), nullable=False, server_default="bda")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    leads = relationship("Lead", back_populates="assigned_agent")

    __table_args__ = (CheckConstraint(USER_ROLE_CHECK_CLAUSE, name="ck_profile_role"),)
