from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from mpos.domain.errors import PersistenceError, ValidationError
from mpos.domain.models import Product, Variant
from mpos.repositories.contracts import CollectionRepository
from mpos.services.common import Clock, IdFactory, iso, local_now, new_id
from mpos.services.settings_service import SettingsService

log = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "price", "quantity", "has_variants", "variants"}
FROZEN_FIELDS = {"id", "created_at"}


def coerce_variants(variants: Iterable) -> tuple[Variant, ...]:
    out: list[Variant] = []
    seen: set[str] = set()
    for v in variants or ():
        if isinstance(v, Variant):
            variant = v
        elif isinstance(v, dict):
            variant = Variant(name=str(v["name"]).strip(), quantity=int(v["quantity"]))
        else:
            name, qty = v
            variant = Variant(name=str(name).strip(), quantity=int(qty))
        if not variant.name:
            raise ValidationError("Variant name is required.")
        if variant.quantity < 0:
            raise ValidationError("Variant quantity must be >= 0.")
        if variant.name in seen:
            raise ValidationError(f"Duplicate variant: {variant.name}")
        seen.add(variant.name)
        out.append(variant)
    return tuple(out)


def _validate(p: Product) -> None:
    if not p.name.strip():
        raise ValidationError("Name is required.")
    if p.price < 0:
        raise ValidationError("Price must be >= 0.")
    if p.quantity < 0:
        raise ValidationError("Quantity must be >= 0.")


class CatalogService:
    def __init__(
        self,
        products: CollectionRepository[Product],
        settings: SettingsService,
        clock: Clock = local_now,
        id_factory: IdFactory = new_id,
    ):
        self.products = products
        self.settings = settings
        self.clock = clock
        self.id_factory = id_factory

    async def list_products(self) -> list[Product]:
        return await self.products.load_or_default()

    async def get_product(self, product_id: str) -> Optional[Product]:
        for p in await self.list_products():
            if p.id == product_id:
                return p
        return None

    async def save_products(self, products: Iterable[Product]) -> bool:
        products = list(products)
        try:
            await self.products.save_all(products)
        except PersistenceError as e:
            log.error("products_save_failed count=%s error=%s", len(products), e)
            return False
        await self.settings.save_app_state(hasProducts=bool(products), productsCount=len(products))
        log.info("products_saved count=%s", len(products))
        return True

    async def add_product(
        self,
        name: str,
        price: float,
        quantity: int = 0,
        variants: Iterable = (),
    ) -> list[Product]:
        """Append a product; the unchanged catalog comes back when it is invalid or cannot be saved."""
        current = await self.list_products()
        try:
            variants = coerce_variants(variants)
            product = Product(
                id=self.id_factory(),
                name=(name or "").strip(),
                price=float(price),
                quantity=int(quantity),
                has_variants=bool(variants),
                variants=variants,
                created_at=iso(self.clock()),
            ).with_derived_quantity()
            _validate(product)
        except ValidationError as e:
            log.warning("product_add_rejected name=%s reason=%s", name, e)
            return current

        updated = [*current, product]
        if not await self.save_products(updated):
            return current
        log.info("product_added id=%s name=%s qty=%s", product.id, product.name, product.quantity)
        return updated

    async def update_product(self, product_id: str, **changes) -> Optional[Product]:
        products = await self.list_products()
        for idx, current in enumerate(products):
            if current.id == product_id:
                break
        else:
            log.warning("product_update_not_found id=%s", product_id)
            return None

        try:
            unknown = set(changes) - EDITABLE_FIELDS - FROZEN_FIELDS
            if unknown:
                raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
            changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
            if "variants" in changes:
                changes["variants"] = coerce_variants(changes["variants"])
                changes.setdefault("has_variants", bool(changes["variants"]))
            updated = replace(current, **changes).with_derived_quantity()
            _validate(updated)
        except ValidationError as e:
            log.warning("product_update_rejected id=%s reason=%s", product_id, e)
            return None

        products[idx] = updated
        if not await self.save_products(products):
            return None
        log.info("product_updated id=%s", product_id)
        return updated

    async def delete_product(self, product_id: str) -> bool:
        products = await self.list_products()
        remaining = [p for p in products if p.id != product_id]
        if len(remaining) == len(products):
            log.warning("product_delete_not_found id=%s", product_id)
            return False
        if not await self.save_products(remaining):
            return False
        log.info("product_deleted id=%s", product_id)
        return True
