from __future__ import annotations

import inspect
import logging
from collections import Counter
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Union

from mpos.domain.errors import AppError, NotFoundError, PersistenceError, ValidationError, InsufficientStockError
from mpos.domain.models import CartLine, PaymentMethod, Product, PurchaseResult, Sale, SaleLineItem
from mpos.repositories.contracts import CollectionRepository
from mpos.repositories.unit_of_work import UnitOfWork
from mpos.services.cart_service import available_stock
from mpos.services.common import Clock, IdFactory, epoch_ms, iso, local_now, new_id
from mpos.services.sales_service import SalesLedger
from mpos.services.settings_service import SettingsService

log = logging.getLogger("mpos.sales")

EMPTY_CART_MESSAGE = "Cart is empty."
SAVE_FAILED_MESSAGE = "Could not save purchase data."
SUCCESS_MESSAGE = "Purchase completed."

# Called with the committed sale and the configured address.
ReceiptHook = Callable[[Sale, str], Union[Awaitable[None], None]]


class PurchaseService:
    """Turns the cart into a committed sale.

    Order of work: read cart and catalog, validate every line, build the sale,
    compute the new catalog, then commit catalog -> sales ledger -> cart clear.
    Nothing is written unless every line validates. The three writes are not
    atomic as a group: if one fails, the ones before it stay applied and the
    purchase is reported as failed.
    """

    def __init__(
        self,
        products: CollectionRepository[Product],
        cart: CollectionRepository[CartLine],
        ledger: SalesLedger,
        settings: SettingsService,
        uow_factory: Callable[[], UnitOfWork],
        clock: Clock = local_now,
        id_factory: IdFactory = new_id,
        receipt_hook: Optional[ReceiptHook] = None,
    ):
        self.products = products
        self.cart = cart
        self.ledger = ledger
        self.settings = settings
        self.uow_factory = uow_factory
        self.clock = clock
        self.id_factory = id_factory
        self.receipt_hook = receipt_hook

    async def process_purchase(self, payment_method: PaymentMethod | str = PaymentMethod.CASH) -> PurchaseResult:
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            return PurchaseResult(success=False, message=f"Unknown payment method: {payment_method}")

        cart = await self.cart.load_or_default()
        products = await self.products.load_or_default()
        log.info("purchase_started payment=%s cart_lines=%s products=%s", method.value, len(cart), len(products))

        try:
            if not cart:
                raise ValidationError(EMPTY_CART_MESSAGE)
            by_id = self.validate_cart(cart, products)
            sale = self.build_sale(cart, by_id, method)
            updated_products = self.apply_inventory(products, cart)
            sales_payload = await self.ledger.appended_payload(sale)
        except PersistenceError as e:
            log.error("purchase_aborted reason=%s", e)
            return PurchaseResult(success=False, message=SAVE_FAILED_MESSAGE)
        except AppError as e:
            log.warning("purchase_rejected reason=%s", e)
            return PurchaseResult(success=False, message=str(e))

        async with self.uow_factory() as uow:
            uow.stage_write(self.products.key, self.products.dumps(updated_products))
            uow.stage_write(self.ledger.key, sales_payload)
            uow.stage_remove(self.cart.key)
            outcome = await uow.commit()

        if not outcome.ok:
            log.error(
                "purchase_commit_failed sale_id=%s failed_key=%s applied=%s",
                sale.id,
                outcome.failed_key,
                ",".join(outcome.applied) or "-",
            )
            return PurchaseResult(success=False, message=SAVE_FAILED_MESSAGE)

        await self.settings.save_app_state(
            hasCartItems=False,
            cartItemsCount=0,
            hasProducts=bool(updated_products),
            productsCount=len(updated_products),
        )
        log.info(
            "sale_created sale_id=%s items=%s total=%.2f payment=%s",
            sale.id,
            len(sale.items),
            sale.total_amount,
            sale.payment_method.value,
        )
        await self._send_receipt(sale)
        return PurchaseResult(success=True, message=SUCCESS_MESSAGE, sale=sale, empty_cart=True)

    def validate_cart(self, cart: list[CartLine], products: list[Product]) -> dict[str, Product]:
        by_id = {p.id: p for p in products}
        requested: Counter[tuple[str, Optional[str]]] = Counter()
        for line in cart:
            product = by_id.get(line.product_id)
            if product is None:
                raise NotFoundError(f"Product not found: {line.product_id}")
            if int(line.quantity) <= 0:
                raise ValidationError("Qty must be >= 1.")

            # lines drawing on the product quantity share one stock pool
            key = (line.product_id, (line.variant_name or None) if product.has_variants else None)
            requested[key] += int(line.quantity)
            stock = available_stock(product, line.variant_name)
            if stock < requested[key]:
                label = f"{product.name} - {line.variant_name}" if line.variant_name else product.name
                raise InsufficientStockError(
                    f"Not enough stock for {label}. Available: {stock}, requested: {requested[key]}"
                )
        return by_id

    def build_sale(self, cart: list[CartLine], by_id: dict[str, Product], method: PaymentMethod) -> Sale:
        now = self.clock()
        items = []
        for line in cart:
            product = by_id[line.product_id]
            unit_price = float(product.price)
            items.append(
                SaleLineItem(
                    product_id=line.product_id,
                    product_name=product.name,
                    variant=line.variant_name or None,
                    quantity=int(line.quantity),
                    unit_price=unit_price,
                    total_price=unit_price * int(line.quantity),
                )
            )
        return Sale(
            id=self.id_factory(),
            date=iso(now),
            items=tuple(items),
            total_amount=sum(it.total_price for it in items),
            payment_method=method,
            timestamp=epoch_ms(now),
        )

    def apply_inventory(self, products: list[Product], cart: list[CartLine]) -> list[Product]:
        updated = []
        for product in products:
            lines = [line for line in cart if line.product_id == product.id]
            if not lines:
                updated.append(product)
                continue
            if product.has_variants:
                for line in lines:
                    product = product.with_variant_delta(line.variant_name, -int(line.quantity))
                log.info("stock_updated product_id=%s variants=%s qty=%s", product.id, len(product.variants), product.quantity)
            else:
                sold = sum(int(line.quantity) for line in lines)
                log.info("stock_updated product_id=%s qty=%s->%s", product.id, product.quantity, product.quantity - sold)
                product = replace(product, quantity=int(product.quantity) - sold)
            updated.append(product)
        return updated

    async def _send_receipt(self, sale: Sale) -> None:
        if self.receipt_hook is None or not await self.settings.should_auto_send_receipts():
            return
        cfg = await self.settings.get_email_config()
        try:
            res = self.receipt_hook(sale, cfg.default_email)
            if inspect.isawaitable(res):
                await res
        except Exception:
            log.exception("receipt_hook_failed sale_id=%s", sale.id)
        else:
            log.info("receipt_sent sale_id=%s to=%s", sale.id, cfg.default_email)
