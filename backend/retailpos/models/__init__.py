from .auth import User, SessionToken, USER_ROLES
from .catalog import Supplier, Product
from .customers import Customer, LOYALTY_TIERS
from .sales import Sale, SaleLine, DocumentSequence, SALE_STATUSES, PAYMENT_METHODS, PAYMENT_STATUSES
from .invoices import Invoice, InvoiceLine, INVOICE_PAYMENT_STATUSES

__all__ = [
    'User', 'SessionToken', 'USER_ROLES',
    'Supplier', 'Product',
    'Customer', 'LOYALTY_TIERS',
    'Sale', 'SaleLine', 'DocumentSequence',
    'SALE_STATUSES', 'PAYMENT_METHODS', 'PAYMENT_STATUSES',
    'Invoice', 'InvoiceLine', 'INVOICE_PAYMENT_STATUSES',
]
