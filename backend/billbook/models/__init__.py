from .catalog import Product, SupplierMapping, WattMapping
from .sales import Order, OrderItem, OrderStatus
from .purchasing import PurchaseOrder, PurchaseOrderItem, PurchaseNature, PurchaseStatus, CURRENCIES
from .settings import CompanyConfig, SyncSession, SyncStatus, SINGLETON_ID
from .auth import User, ROLES, ROLE_ADMIN, ROLE_EMPLOYEE, ELEVATED_ROLES

__all__ = [
    'Product', 'SupplierMapping', 'WattMapping',
    'Order', 'OrderItem', 'OrderStatus',
    'PurchaseOrder', 'PurchaseOrderItem', 'PurchaseNature', 'PurchaseStatus', 'CURRENCIES',
    'CompanyConfig', 'SyncSession', 'SyncStatus', 'SINGLETON_ID',
    'User', 'ROLES', 'ROLE_ADMIN', 'ROLE_EMPLOYEE', 'ELEVATED_ROLES',
]
