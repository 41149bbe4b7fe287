"""Service model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from agenda.database import Base


class Service(Base):
    """Represents a bookable service and how long it takes."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    price_cents = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, default=True)
