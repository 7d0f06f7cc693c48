"""Models package - exports all SQLAlchemy models."""
from flowcrm.models.customer import Customer
from flowcrm.models.product import Product
from flowcrm.models.presale import PreSale, PreSaleStatus, DiscountType
from flowcrm.models.presale_item import PreSaleItem
from flowcrm.models.stock_adjustment import StockAdjustment, StockAdjustmentType
from flowcrm.models.audit_log import AuditLog, AuditAction

__all__ = [
    'Customer', 'Product',
    'PreSale', 'PreSaleStatus', 'DiscountType', 'PreSaleItem',
    'StockAdjustment', 'StockAdjustmentType',
    'AuditLog', 'AuditAction',
]
