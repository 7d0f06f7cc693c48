"""Customer model."""
import uuid

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from flowcrm.database import Base, utcnow


class Customer(Base):
    """Customer (cliente)."""

    __tablename__ = 'customers'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    document = Column(String(20), nullable=True)  # CPF / CNPJ
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    presales = relationship('PreSale', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
