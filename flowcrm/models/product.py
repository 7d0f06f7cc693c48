"""Product model."""
import uuid

from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime
from flowcrm.database import Base, utcnow


class Product(Base):
    """Product model."""

    __tablename__ = 'products'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(20), nullable=False, default='UN')
    description = Column(Text, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    purchase_price = Column(Numeric(10, 2), nullable=False)  # cost
    sale_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.code}', stock={self.stock})>"
