from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from mpos.domain.errors import InsufficientStockError, NotFoundError, PersistenceError, ValidationError
from mpos.domain.models import CartLine, Product, cart_item_key
from mpos.repositories.contracts import CollectionRepository
from mpos.services.catalog_service import CatalogService
from mpos.services.settings_service import SettingsService

log = logging.getLogger(__name__)


def available_stock(product: Product, variant_name: Optional[str]) -> int:
    """Stock a cart line for this product/variant may draw from.

    A variant's own stock only counts when the product tracks variants; every
    other line is checked against the product quantity, which is also what
    checkout decrements for it.
    """
    if variant_name and product.has_variants:
        variant = product.find_variant(variant_name)
        if variant is None:
            raise NotFoundError(f"Variant not found: {product.name} - {variant_name}")
        return int(variant.quantity)
    return int(product.quantity)


class CartService:
    def __init__(self, cart: CollectionRepository[CartLine], catalog: CatalogService, settings: SettingsService):
        self.cart = cart
        self.catalog = catalog
        self.settings = settings

    async def get_cart(self) -> list[CartLine]:
        return await self.cart.load_or_default()

    async def save_cart(self, lines: Iterable[CartLine]) -> bool:
        lines = list(lines)
        try:
            await self.cart.save_all(lines)
        except PersistenceError as e:
            log.error("cart_save_failed lines=%s error=%s", len(lines), e)
            return False
        await self.settings.save_app_state(hasCartItems=bool(lines), cartItemsCount=len(lines))
        return True

    async def add_to_cart(self, product_id: str, quantity: int, variant_name: Optional[str] = None) -> Optional[list[CartLine]]:
        """Add or merge a line; None when the product, variant or stock does not allow it."""
        quantity = int(quantity)
        variant_name = variant_name or None
        try:
            if quantity <= 0:
                raise ValidationError("Qty must be >= 1.")
            product = await self.catalog.get_product(product_id)
            if product is None:
                raise NotFoundError(f"Product not found: {product_id}")
            stock = available_stock(product, variant_name)
            if quantity > stock:
                raise InsufficientStockError(f"Not enough stock for {product.name}. Available: {stock}")

            cart = await self.get_cart()
            key = cart_item_key(product_id, variant_name)
            for idx, line in enumerate(cart):
                if line.cart_item_key == key:
                    merged = line.quantity + quantity
                    if merged > stock:
                        raise InsufficientStockError(
                            f"Not enough stock for {product.name}. Available: {stock}, in cart: {line.quantity}"
                        )
                    cart[idx] = replace(line, quantity=merged)
                    break
            else:
                cart.append(CartLine(cart_item_key=key, product_id=product_id, quantity=quantity, variant_name=variant_name))
        except (ValidationError, NotFoundError) as e:
            log.warning("add_to_cart_rejected product_id=%s variant=%s qty=%s reason=%s", product_id, variant_name, quantity, e)
            return None

        if not await self.save_cart(cart):
            return None
        return cart

    async def update_cart_item_quantity(self, key: str, new_quantity: int) -> Optional[list[CartLine]]:
        # No stock re-check here, unlike add_to_cart.
        if int(new_quantity) <= 0:
            return await self.remove_from_cart(key)

        cart = await self.get_cart()
        for idx, line in enumerate(cart):
            if line.cart_item_key == key:
                cart[idx] = replace(line, quantity=int(new_quantity))
                break
        else:
            log.warning("cart_line_not_found key=%s", key)
            return None

        if not await self.save_cart(cart):
            return None
        return cart

    async def remove_from_cart(self, key: str) -> list[CartLine]:
        cart = await self.get_cart()
        updated = [line for line in cart if line.cart_item_key != key]
        if len(updated) == len(cart):
            return cart
        if not await self.save_cart(updated):
            return cart
        return updated

    async def clear_cart(self) -> list[CartLine]:
        try:
            await self.cart.remove()
        except PersistenceError as e:
            log.error("cart_clear_failed error=%s", e)
            return []
        await self.settings.save_app_state(hasCartItems=False, cartItemsCount=0)
        return []

    async def verify_cart_empty(self) -> tuple[bool, int]:
        cart = await self.get_cart()
        return len(cart) == 0, len(cart)

    async def get_cart_total(self) -> float:
        products = {p.id: p for p in await self.catalog.list_products()}
        total = 0.0
        for line in await self.get_cart():
            product = products.get(line.product_id)
            if product is None:
                continue
            total += float(product.price) * int(line.quantity)
        return total
