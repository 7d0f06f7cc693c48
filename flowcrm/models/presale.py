"""Pre-sale model (pré-venda)."""
import enum
import uuid
from decimal import Decimal

from sqlalchemy import Column, String, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from flowcrm.database import Base, utcnow


class PreSaleStatus(enum.Enum):
    """Pre-sale status enum."""
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    CONVERTED = "converted"


class DiscountType(enum.Enum):
    """Discount type enum."""
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class PreSale(Base):
    """
    Pre-sale (quoted order).

    Totals are derived from the items and the global discount and are
    recomputed on every change. Both discount representations are stored so
    the discount type can be switched without losing the equivalent value.
    A converted pre-sale is final: it can no longer be edited or deleted.
    """

    __tablename__ = 'presales'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(36), ForeignKey('customers.id'), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=PreSaleStatus.PENDING.value, index=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    total = Column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    discount = Column(Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    discount_type = Column(String(10), nullable=False, default=DiscountType.FIXED.value)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal('0.00'))
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    customer = relationship('Customer', back_populates='presales')
    items = relationship('PreSaleItem', back_populates='presale', cascade='all, delete-orphan',
                         order_by='PreSaleItem.position')

    def __repr__(self):
        return f"<PreSale(id={self.id}, status='{self.status}', total={self.total})>"

    @property
    def is_final(self):
        """Converted pre-sales no longer accept edits."""
        return self.status == PreSaleStatus.CONVERTED.value
