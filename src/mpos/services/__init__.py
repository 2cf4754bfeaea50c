from .settings_service import SettingsService
from .catalog_service import CatalogService
from .cart_service import CartService
from .sales_service import SalesLedger
from .purchase_service import PurchaseService
from .return_service import ReturnService
from .reporting_service import ReportingService
from .backup_service import BackupService
from .operations_service import OperationsService

__all__ = [
    "SettingsService",
    "CatalogService",
    "CartService",
    "SalesLedger",
    "PurchaseService",
    "ReturnService",
    "ReportingService",
    "BackupService",
    "OperationsService",
]
