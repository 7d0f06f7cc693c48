"""Pre-sale item model."""
import uuid
from decimal import Decimal

from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from flowcrm.database import Base


class PreSaleItem(Base):
    """
    Pre-sale line.

    Stores the unit price agreed at quote time, which may differ from the
    product's current sale price.
    """

    __tablename__ = 'presale_items'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    presale_id = Column(String(36), ForeignKey('presales.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Numeric(10, 3), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    total_price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    presale = relationship('PreSale', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<PreSaleItem(id={self.id}, product_id={self.product_id}, qty={self.quantity}, total={self.total_price})>"
