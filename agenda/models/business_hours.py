"""Business hours model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Time, UniqueConstraint
from agenda.database import Base


class BusinessHours(Base):
    """Opening hours for one weekday (0 = Sunday ... 6 = Saturday)."""
    __tablename__ = "business_hours"
    __table_args__ = (UniqueConstraint("tenant_id", "weekday", name="uq_business_hours_tenant_weekday"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    weekday = Column(Integer, nullable=False)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    closed = Column(Boolean, default=False)
