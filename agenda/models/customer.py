"""Customer model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from agenda.database import Base


class Customer(Base):
    """A person who booked at least once, identified by contact per tenant."""
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("tenant_id", "contact", name="uq_customers_tenant_contact"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    contact = Column(String, nullable=False)
