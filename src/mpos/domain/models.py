from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class PaymentMethod(str, Enum):
    CASH = "efectivo"
    CARD = "tarjeta"


def cart_item_key(product_id: str, variant_name: Optional[str] = None) -> str:
    if variant_name:
        return f"{product_id}_{variant_name}"
    return product_id


@dataclass(frozen=True)
class Variant:
    name: str
    quantity: int


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    quantity: int
    has_variants: bool = False
    variants: tuple[Variant, ...] = ()
    created_at: str = ""

    def find_variant(self, name: Optional[str]) -> Optional[Variant]:
        for v in self.variants:
            if v.name == name:
                return v
        return None

    def variant_total(self) -> int:
        return sum(int(v.quantity) for v in self.variants)

    def with_derived_quantity(self) -> "Product":
        """Keep quantity equal to the variant sum for variant products."""
        if not self.has_variants:
            return self
        return replace(self, quantity=self.variant_total())

    def with_variant_delta(self, variant_name: str, delta: int) -> "Product":
        variants = tuple(
            replace(v, quantity=int(v.quantity) + int(delta)) if v.name == variant_name else v
            for v in self.variants
        )
        return replace(self, variants=variants).with_derived_quantity()


@dataclass(frozen=True)
class CartLine:
    cart_item_key: str
    product_id: str
    quantity: int
    variant_name: Optional[str] = None


@dataclass(frozen=True)
class SaleLineItem:
    product_id: str
    product_name: str
    variant: Optional[str]
    quantity: int
    unit_price: float
    total_price: float


@dataclass(frozen=True)
class Sale:
    id: str
    date: str
    items: tuple[SaleLineItem, ...]
    total_amount: float
    payment_method: PaymentMethod
    timestamp: int

    def find_line(self, product_id: str, variant: Optional[str]) -> Optional[SaleLineItem]:
        for it in self.items:
            if it.product_id == product_id and (it.variant or None) == (variant or None):
                return it
        return None


@dataclass(frozen=True)
class ReturnLineItem:
    product_id: str
    quantity: int
    unit_price: float
    total_price: float
    variant: Optional[str] = None
    product_name: str = ""
    original_sale_id: str = ""


@dataclass(frozen=True)
class ReturnRecord:
    id: str
    date: str
    items: tuple[ReturnLineItem, ...]
    total_amount: float
    reason: str
    original_sale_id: str
    timestamp: int


@dataclass(frozen=True)
class EmailConfig:
    default_email: str = ""
    enable_email_notifications: bool = False
    auto_send_receipts: bool = False
    email_service_provider: str = "mailto"


@dataclass(frozen=True)
class TopProduct:
    name: str
    quantity: int
    revenue: float


@dataclass(frozen=True)
class DailyReport:
    date: str
    sales_count: int
    total_amount: float
    total_items: int
    sales: tuple[Sale, ...]
    payment_methods: dict[str, float]
    top_products: tuple[TopProduct, ...]

    @property
    def total_sales(self) -> int:
        return self.sales_count


@dataclass(frozen=True)
class PurchaseResult:
    success: bool
    message: str
    sale: Optional[Sale] = None
    empty_cart: bool = False


@dataclass(frozen=True)
class ReturnResult:
    success: bool
    message: str
    return_record: Optional[ReturnRecord] = None
    updated_products: bool = False


@dataclass(frozen=True)
class HealthReport:
    products_count: int
    cart_lines: int
    sales_count: int
    returns_count: int
    issues: tuple[str, ...] = field(default_factory=tuple)
    generated_at: str = ""

    @property
    def ok(self) -> bool:
        return not self.issues
