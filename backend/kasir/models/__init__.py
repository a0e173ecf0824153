from .catalog import Product, PaymentMethod, StockMovement
from .customers import Customer, CustomerPointsHistory
from .sales import Sale, SaleLine, Receivable

__all__ = [
    'Product', 'PaymentMethod', 'StockMovement',
    'Customer', 'CustomerPointsHistory',
    'Sale', 'SaleLine', 'Receivable',
]
