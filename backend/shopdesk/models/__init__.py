from .auth import User, SessionToken, ROLES
from .partners import Supplier, Customer, CustomerPurchase, SUPPLIER_CATEGORIES
from .catalog import Product, product_suppliers
from .inventory import StockMovement, MOVEMENT_TYPES
from .sales import Sale, SaleLine, Payment, Shift, PAYMENT_TYPES
from .documents import Return, ReturnLine, Quotation, QuotationLine
from .accounting import (
    Transaction,
    TRANSACTION_TYPES,
    CURRENCIES,
    CATEGORY_SALES,
    CATEGORY_RETURNS,
    CATEGORY_PARTIAL_RETURNS,
)
from .audit import AuditLog

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Supplier', 'Customer', 'CustomerPurchase', 'SUPPLIER_CATEGORIES',
    'Product', 'product_suppliers',
    'StockMovement', 'MOVEMENT_TYPES',
    'Sale', 'SaleLine', 'Payment', 'Shift', 'PAYMENT_TYPES',
    'Return', 'ReturnLine', 'Quotation', 'QuotationLine',
    'Transaction', 'TRANSACTION_TYPES', 'CURRENCIES',
    'CATEGORY_SALES', 'CATEGORY_RETURNS', 'CATEGORY_PARTIAL_RETURNS',
    'AuditLog',
]
