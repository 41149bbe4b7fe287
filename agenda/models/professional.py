"""Professional model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from agenda.database import Base


class Professional(Base):
    """Represents a staff member who can be booked."""
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    active = Column(Boolean, default=True)
