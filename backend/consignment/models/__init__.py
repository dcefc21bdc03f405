from .tenancy import Organization
from .auth import User, SessionToken
from .consignors import Consignor, Item
from .sales import Transaction
from .payouts import Payout, Statement
from .notifications import Notification

__all__ = [
    'Organization',
    'User', 'SessionToken',
    'Consignor', 'Item',
    'Transaction',
    'Payout', 'Statement',
    'Notification',
]
