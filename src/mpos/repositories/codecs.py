"""JSON shapes of the persisted collections.

Field names follow the stored layout (camelCase), so data written by earlier
versions of the app keeps loading.
"""
from __future__ import annotations

from typing import Any, Optional

from mpos.domain.models import (
    CartLine,
    EmailConfig,
    PaymentMethod,
    Product,
    ReturnLineItem,
    ReturnRecord,
    Sale,
    SaleLineItem,
    Variant,
)


def _opt_str(v: Any) -> Optional[str]:
    if v is None or v == "":
        return None
    return str(v)


def variant_to_dict(v: Variant) -> dict:
    return {"name": v.name, "quantity": int(v.quantity)}


def variant_from_dict(d: dict) -> Variant:
    return Variant(name=str(d["name"]), quantity=int(d["quantity"]))


def product_to_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "price": float(p.price),
        "quantity": int(p.quantity),
        "hasVariants": bool(p.has_variants),
        "variants": [variant_to_dict(v) for v in p.variants],
        "createdAt": p.created_at,
    }


def product_from_dict(d: dict) -> Product:
    return Product(
        id=str(d["id"]),
        name=str(d["name"]),
        price=float(d["price"]),
        quantity=int(d["quantity"]),
        has_variants=bool(d.get("hasVariants", False)),
        variants=tuple(variant_from_dict(v) for v in (d.get("variants") or [])),
        created_at=str(d.get("createdAt", "")),
    )


def cart_line_to_dict(line: CartLine) -> dict:
    return {
        "cartItemKey": line.cart_item_key,
        "productId": line.product_id,
        "quantity": int(line.quantity),
        "variantName": line.variant_name,
    }


def cart_line_from_dict(d: dict) -> CartLine:
    return CartLine(
        cart_item_key=str(d["cartItemKey"]),
        product_id=str(d["productId"]),
        quantity=int(d["quantity"]),
        variant_name=_opt_str(d.get("variantName")),
    )


def sale_line_to_dict(it: SaleLineItem) -> dict:
    return {
        "productId": it.product_id,
        "productName": it.product_name,
        "variant": it.variant,
        "quantity": int(it.quantity),
        "unitPrice": float(it.unit_price),
        "totalPrice": float(it.total_price),
    }


def sale_line_from_dict(d: dict) -> SaleLineItem:
    return SaleLineItem(
        product_id=str(d["productId"]),
        product_name=str(d.get("productName", "")),
        variant=_opt_str(d.get("variant")),
        quantity=int(d["quantity"]),
        unit_price=float(d["unitPrice"]),
        total_price=float(d["totalPrice"]),
    )


def sale_to_dict(s: Sale) -> dict:
    return {
        "id": s.id,
        "date": s.date,
        "items": [sale_line_to_dict(it) for it in s.items],
        "totalAmount": float(s.total_amount),
        "paymentMethod": PaymentMethod(s.payment_method).value,
        "timestamp": int(s.timestamp),
    }


def sale_from_dict(d: dict) -> Sale:
    return Sale(
        id=str(d["id"]),
        date=str(d["date"]),
        items=tuple(sale_line_from_dict(it) for it in d.get("items") or []),
        total_amount=float(d["totalAmount"]),
        payment_method=PaymentMethod(d.get("paymentMethod", PaymentMethod.CASH.value)),
        timestamp=int(d.get("timestamp", 0)),
    )


def return_line_to_dict(it: ReturnLineItem) -> dict:
    return {
        "productId": it.product_id,
        "productName": it.product_name,
        "variant": it.variant,
        "quantity": int(it.quantity),
        "unitPrice": float(it.unit_price),
        "totalPrice": float(it.total_price),
        "originalSaleId": it.original_sale_id,
    }


def return_line_from_dict(d: dict) -> ReturnLineItem:
    return ReturnLineItem(
        product_id=str(d["productId"]),
        product_name=str(d.get("productName", "")),
        variant=_opt_str(d.get("variant")),
        quantity=int(d["quantity"]),
        unit_price=float(d.get("unitPrice", 0.0)),
        total_price=float(d["totalPrice"]),
        original_sale_id=str(d.get("originalSaleId", "")),
    )


def return_to_dict(r: ReturnRecord) -> dict:
    return {
        "id": r.id,
        "date": r.date,
        "items": [return_line_to_dict(it) for it in r.items],
        "totalAmount": float(r.total_amount),
        "reason": r.reason,
        "originalSaleId": r.original_sale_id,
        "timestamp": int(r.timestamp),
    }


def return_from_dict(d: dict) -> ReturnRecord:
    return ReturnRecord(
        id=str(d["id"]),
        date=str(d["date"]),
        items=tuple(return_line_from_dict(it) for it in d.get("items") or []),
        total_amount=float(d["totalAmount"]),
        reason=str(d["reason"]),
        original_sale_id=str(d["originalSaleId"]),
        timestamp=int(d.get("timestamp", 0)),
    )


def email_config_to_dict(c: EmailConfig) -> dict:
    return {
        "defaultEmail": c.default_email,
        "enableEmailNotifications": bool(c.enable_email_notifications),
        "autoSendReceipts": bool(c.auto_send_receipts),
        "emailServiceProvider": c.email_service_provider,
    }


def email_config_from_dict(d: dict) -> EmailConfig:
    return EmailConfig(
        default_email=str(d.get("defaultEmail", "")),
        enable_email_notifications=bool(d.get("enableEmailNotifications", False)),
        auto_send_receipts=bool(d.get("autoSendReceipts", False)),
        email_service_provider=str(d.get("emailServiceProvider", "mailto")),
    )
