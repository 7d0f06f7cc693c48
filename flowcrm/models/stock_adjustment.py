"""Stock adjustment model."""
import enum
import uuid

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from flowcrm.database import Base, utcnow


class StockAdjustmentType(enum.Enum):
    """Stock adjustment type enum."""
    ADD = "add"
    REMOVE = "remove"


class StockAdjustment(Base):
    """Stock adjustment (movimiento de stock). Append-only."""

    __tablename__ = 'stock_adjustments'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    adjustment_type = Column(String(10), nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    user_name = Column(String(255), nullable=False, default='System')
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Relationships
    product = relationship('Product')

    def __repr__(self):
        return f"<StockAdjustment(id={self.id}, type={self.adjustment_type}, qty={self.quantity})>"
