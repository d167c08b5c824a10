from .tenancy import Owner, Employee, StoreSettings
from .auth import SessionToken
from .customers import Client
from .inventory import Category, Product
from .sales import Sale
from .loyalty import LoyaltyConfig, LoyaltyAccount, LoyaltyHistoryEntry, Reward
from .service_orders import ServiceOrder
from .billing import PaymentMethod, Supplier, Bill, Payment
from .system import SystemSetting, ActivityLog, SystemNotification, NotificationDismissal

__all__ = [
    'Owner', 'Employee', 'StoreSettings',
    'SessionToken',
    'Client',
    'Category', 'Product',
    'Sale',
    'LoyaltyConfig', 'LoyaltyAccount', 'LoyaltyHistoryEntry', 'Reward',
    'ServiceOrder',
    'PaymentMethod', 'Supplier', 'Bill', 'Payment',
    'SystemSetting', 'ActivityLog', 'SystemNotification', 'NotificationDismissal',
]
