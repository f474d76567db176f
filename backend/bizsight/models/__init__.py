from .auth import User, SessionToken
from .inventory import Product
from .sales import Sale, SaleLine
from .settings import AppSettings

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Sale', 'SaleLine',
    'AppSettings',
]
