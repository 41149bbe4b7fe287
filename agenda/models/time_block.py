"""Time block model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from agenda.database import Base


class TimeBlock(Base):
    """An unavailability window, such as a lunch break.

    A block without a professional applies to the whole business.
    """
    __tablename__ = "time_blocks"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String)
