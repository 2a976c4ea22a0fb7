from .tenancy import Tenant
from .auth import User, SessionToken
from .parties import Customer, Vendor
from .inventory import Product, InventoryImage, Location, InventoryRecord
from .sales import Sale, SaleItem, Payment, InvoiceSequence
from .reporting import (
    ReportDefinition,
    ReportParameter,
    ReportExecutionHistory,
    Dashboard,
    DashboardWidget,
)

__all__ = [
    'Tenant',
    'User', 'SessionToken',
    'Customer', 'Vendor',
    'Product', 'InventoryImage', 'Location', 'InventoryRecord',
    'Sale', 'SaleItem', 'Payment', 'InvoiceSequence',
    'ReportDefinition', 'ReportParameter', 'ReportExecutionHistory',
    'Dashboard', 'DashboardWidget',
]
