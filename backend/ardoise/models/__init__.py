from .catalog import CatalogItem
from .clients import Client, LineItem
from .transactions import Transaction, TransactionLine

__all__ = [
    'CatalogItem',
    'Client', 'LineItem',
    'Transaction', 'TransactionLine',
]
