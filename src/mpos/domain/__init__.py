from .models import (
    CartLine,
    DailyReport,
    EmailConfig,
    PaymentMethod,
    Product,
    PurchaseResult,
    ReturnLineItem,
    ReturnRecord,
    ReturnResult,
    Sale,
    SaleLineItem,
    Variant,
)
from .errors import AppError, ValidationError, NotFoundError, InsufficientStockError, PersistenceError

__all__ = [
    "CartLine",
    "DailyReport",
    "EmailConfig",
    "PaymentMethod",
    "Product",
    "PurchaseResult",
    "ReturnLineItem",
    "ReturnRecord",
    "ReturnResult",
    "Sale",
    "SaleLineItem",
    "Variant",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "PersistenceError",
]
