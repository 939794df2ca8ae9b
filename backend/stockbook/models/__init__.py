from .tenancy import Business, SessionToken
from .catalog import Product, Contact, CONTACT_ROLES
from .transactions import Transaction, TransactionLine, TRANSACTION_KINDS

__all__ = [
    'Business', 'SessionToken',
    'Product', 'Contact', 'CONTACT_ROLES',
    'Transaction', 'TransactionLine', 'TRANSACTION_KINDS',
]
