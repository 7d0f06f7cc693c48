"""
Audit Log model for tracking critical actions in the system.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum as SQLEnum
from flowcrm.database import Base, utcnow


class AuditAction(enum.Enum):
    """Enumeration of auditable actions."""
    # Pre-sales
    PRESALE_CREATED = "PRESALE_CREATED"
    PRESALE_UPDATED = "PRESALE_UPDATED"
    PRESALE_STATUS_CHANGED = "PRESALE_STATUS_CHANGED"
    PRESALE_CONVERTED = "PRESALE_CONVERTED"
    PRESALE_DELETED = "PRESALE_DELETED"

    # Inventory
    STOCK_ADJUSTED = "STOCK_ADJUSTED"


class AuditLog(Base):
    """Audit log for tracking user actions."""
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    action = Column(SQLEnum(AuditAction, name='audit_action'), nullable=False, index=True)
    resource_type = Column(String(50))  # e.g., 'presale', 'product_stock'
    resource_id = Column(String(36))  # ID of the affected resource
    details = Column(Text)  # JSON with additional details
    user_name = Column(String(255), nullable=False, default='System')
    ip_address = Column(String(45))  # IPv4 or IPv6
    user_agent = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action.value} by {self.user_name} at {self.created_at}>"
