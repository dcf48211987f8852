from .catalog import ProductType, Product
from .stock import StockMovement
from .sales import Sale, SALE_PENDING, SALE_APPROVED, SALE_REJECTED, SALE_STATUSES

__all__ = [
    'ProductType', 'Product',
    'StockMovement',
    'Sale', 'SALE_PENDING', 'SALE_APPROVED', 'SALE_REJECTED', 'SALE_STATUSES',
]
