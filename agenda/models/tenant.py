"""Tenant model definitions."""

from sqlalchemy import Column, Integer, String
from agenda.database import Base


class Tenant(Base):
    """Represents a business with its own public booking page."""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    theme_variant = Column(String, default="salon")
