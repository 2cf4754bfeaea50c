from __future__ import annotations

import logging
from datetime import timedelta

from mpos.domain.models import HealthReport, PaymentMethod, Product, Sale, SaleLineItem, Variant
from mpos.repositories import Repositories
from mpos.services.common import Clock, IdFactory, epoch_ms, iso, local_now, new_id
from mpos.services.settings_service import SettingsService

log = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.005


class OperationsService:
    def __init__(self, repos: Repositories, settings: SettingsService, clock: Clock = local_now, id_factory: IdFactory = new_id):
        self.repos = repos
        self.settings = settings
        self.clock = clock
        self.id_factory = id_factory

    async def run_health_check(self) -> HealthReport:
        products = await self.repos.products.load()
        cart = await self.repos.cart.load()
        sales = await self.repos.sales.load()
        returns = await self.repos.returns.load()

        issues: list[str] = []
        for name, res in (("products", products), ("cart", cart), ("sales", sales), ("returns", returns)):
            if not res.ok:
                issues.append(f"unreadable {name}: {res.error}")

        catalog = {p.id: p for p in products.unwrap_or([])}
        for p in catalog.values():
            if p.quantity < 0 or any(v.quantity < 0 for v in p.variants):
                issues.append(f"negative stock: {p.id}")
            if p.has_variants and p.quantity != p.variant_total():
                issues.append(f"variant sum mismatch: {p.id} ({p.quantity} != {p.variant_total()})")

        for line in cart.unwrap_or([]):
            product = catalog.get(line.product_id)
            if product is None:
                issues.append(f"cart line for missing product: {line.cart_item_key}")
            elif line.variant_name and product.has_variants and product.find_variant(line.variant_name) is None:
                issues.append(f"cart line for missing variant: {line.cart_item_key}")

        for s in sales.unwrap_or([]):
            if abs(s.total_amount - sum(it.total_price for it in s.items)) > TOTAL_TOLERANCE:
                issues.append(f"sale total mismatch: {s.id}")

        report = HealthReport(
            products_count=len(catalog),
            cart_lines=len(cart.unwrap_or([])),
            sales_count=len(sales.unwrap_or([])),
            returns_count=len(returns.unwrap_or([])),
            issues=tuple(issues),
            generated_at=iso(self.clock()),
        )
        if issues:
            log.warning("health_check issues=%s", len(issues))
        else:
            log.info("health_check ok products=%s sales=%s", report.products_count, report.sales_count)
        return report

    async def initialize_default_data(self) -> bool:
        """Seed a starter catalog the first time the store is opened."""
        if await self.repos.store.get_item(self.repos.products.key) is not None:
            return False
        now = iso(self.clock())
        defaults = [
            Product(
                id=self.id_factory(),
                name="Camiseta del Grupo",
                price=15.99,
                quantity=0,
                has_variants=True,
                variants=(Variant("Talla S", 8), Variant("Talla M", 10), Variant("Talla L", 7)),
                created_at=now,
            ).with_derived_quantity(),
            Product(id=self.id_factory(), name="CD Álbum Debut", price=12.50, quantity=50, created_at=now),
            Product(
                id=self.id_factory(),
                name="Taza Promocional",
                price=8.99,
                quantity=0,
                has_variants=True,
                variants=(Variant("Blanca", 8), Variant("Negra", 7)),
                created_at=now,
            ).with_derived_quantity(),
        ]
        await self.repos.products.save_all(defaults)
        await self.settings.save_app_state(hasProducts=True, productsCount=len(defaults))
        log.info("default_data_initialized products=%s", len(defaults))
        return True

    async def create_demo_data(self) -> None:
        """Replace catalog and sales with demo content."""
        dt = self.clock()
        now = iso(dt)
        shirt = Product(
            id=self.id_factory(),
            name="Camiseta Banda Demo",
            price=25.99,
            quantity=0,
            has_variants=True,
            variants=(Variant("S", 10), Variant("M", 15), Variant("L", 15), Variant("XL", 10)),
            created_at=now,
        ).with_derived_quantity()
        cd = Product(id=self.id_factory(), name="CD Último Álbum", price=15.99, quantity=30, created_at=now)
        mug = Product(id=self.id_factory(), name="Taza Logo Banda", price=8.50, quantity=25, created_at=now)
        poster = Product(id=self.id_factory(), name="Poster Concierto", price=12.00, quantity=40, created_at=now)
        products = [shirt, cd, mug, poster]

        def line(p: Product, qty: int, variant: str | None = None) -> SaleLineItem:
            return SaleLineItem(p.id, p.name, variant, qty, p.price, p.price * qty)

        first = (line(shirt, 2, "M"),)
        second = (line(cd, 1), line(mug, 1))
        later = dt + timedelta(seconds=1)
        sales = [
            Sale(self.id_factory(), now, first, sum(i.total_price for i in first), PaymentMethod.CASH, epoch_ms(dt)),
            Sale(self.id_factory(), iso(later), second, sum(i.total_price for i in second), PaymentMethod.CARD, epoch_ms(later)),
        ]

        await self.repos.products.save_all(products)
        await self.repos.sales.save_all(sales)
        await self.settings.save_app_state(hasProducts=True, productsCount=len(products), hasCartItems=False, cartItemsCount=0)
        log.info("demo_data_created products=%s sales=%s", len(products), len(sales))
