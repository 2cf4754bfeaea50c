from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional, Union

from mpos.domain.errors import AppError, NotFoundError, PersistenceError, ValidationError
from mpos.domain.models import Product, ReturnLineItem, ReturnRecord, ReturnResult, Sale
from mpos.repositories.codecs import return_line_from_dict
from mpos.repositories.contracts import CollectionRepository
from mpos.repositories.unit_of_work import UnitOfWork
from mpos.services.common import Clock, IdFactory, epoch_ms, iso, local_now, new_id
from mpos.services.sales_service import SalesLedger

log = logging.getLogger("mpos.returns")

INCOMPLETE_MESSAGE = "Incomplete return request."
SALE_NOT_FOUND_MESSAGE = "Original sale not found."
SAVE_FAILED_MESSAGE = "Could not save return data."
SUCCESS_MESSAGE = "Return processed."

ReturnItemInput = Union[ReturnLineItem, dict]


def coerce_return_item(item: ReturnItemInput, sale_id: str) -> ReturnLineItem:
    if isinstance(item, ReturnLineItem):
        line = item
    elif "productId" in item:
        line = return_line_from_dict(item)
    else:
        line = ReturnLineItem(**item)
    if not line.original_sale_id:
        line = replace(line, original_sale_id=sale_id)
    return replace(line, variant=line.variant or None)


class ReturnService:
    """Post-sale returns: validate against the original sale, restock, record."""

    def __init__(
        self,
        products: CollectionRepository[Product],
        returns: CollectionRepository[ReturnRecord],
        ledger: SalesLedger,
        uow_factory: Callable[[], UnitOfWork],
        clock: Clock = local_now,
        id_factory: IdFactory = new_id,
    ):
        self.products = products
        self.returns = returns
        self.ledger = ledger
        self.uow_factory = uow_factory
        self.clock = clock
        self.id_factory = id_factory

    async def list_returns(self) -> list[ReturnRecord]:
        return await self.returns.load_or_default()

    async def returns_for_sale(self, sale_id: str) -> list[ReturnRecord]:
        return [r for r in await self.list_returns() if r.original_sale_id == sale_id]

    async def process_return(
        self,
        original_sale_id: str,
        items: Optional[Iterable[ReturnItemInput]],
        reason: str,
    ) -> ReturnResult:
        try:
            lines = self._parse_request(original_sale_id, items, reason)
            sale = await self.ledger.get_sale(original_sale_id)
            if sale is None:
                raise NotFoundError(SALE_NOT_FOUND_MESSAGE)
            self.validate_against_sale(sale, lines)

            record = self.build_return(original_sale_id, lines, reason.strip())
            products = await self._load_strict(self.products)
            restored = self.restore_inventory(products, lines)
            returns_payload = self.returns.dumps([*(await self._load_strict(self.returns)), record])
        except PersistenceError as e:
            log.error("return_aborted sale_id=%s reason=%s", original_sale_id, e)
            return ReturnResult(success=False, message=SAVE_FAILED_MESSAGE)
        except AppError as e:
            log.warning("return_rejected sale_id=%s reason=%s", original_sale_id, e)
            return ReturnResult(success=False, message=str(e))

        async with self.uow_factory() as uow:
            uow.stage_write(self.products.key, self.products.dumps(restored))
            uow.stage_write(self.returns.key, returns_payload)
            outcome = await uow.commit()

        if not outcome.ok:
            log.error(
                "return_commit_failed return_id=%s failed_key=%s applied=%s",
                record.id,
                outcome.failed_key,
                ",".join(outcome.applied) or "-",
            )
            return ReturnResult(success=False, message=SAVE_FAILED_MESSAGE)

        log.info(
            "return_created return_id=%s sale_id=%s items=%s total=%.2f",
            record.id,
            original_sale_id,
            len(record.items),
            record.total_amount,
        )
        return ReturnResult(success=True, message=SUCCESS_MESSAGE, return_record=record, updated_products=True)

    def _parse_request(self, sale_id: str, items, reason: str) -> list[ReturnLineItem]:
        if not sale_id or not items or not (reason or "").strip():
            raise ValidationError(INCOMPLETE_MESSAGE)
        try:
            lines = [coerce_return_item(it, sale_id) for it in items]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(INCOMPLETE_MESSAGE) from e
        if not lines or any(not line.product_id or int(line.quantity) <= 0 for line in lines):
            raise ValidationError(INCOMPLETE_MESSAGE)
        return lines

    def validate_against_sale(self, sale: Sale, lines: list[ReturnLineItem]) -> None:
        # Checked per request only; earlier returns on the same sale are not counted.
        for line in lines:
            original = sale.find_line(line.product_id, line.variant)
            label = line.product_name or line.product_id
            if original is None:
                raise ValidationError(f"Product {label} does not belong to this sale.")
            if int(line.quantity) > int(original.quantity):
                raise ValidationError(f"Return quantity exceeds the quantity sold for {label}.")

    def build_return(self, sale_id: str, lines: list[ReturnLineItem], reason: str) -> ReturnRecord:
        now = self.clock()
        return ReturnRecord(
            id=self.id_factory(),
            date=iso(now),
            items=tuple(lines),
            total_amount=sum(float(line.total_price) for line in lines),
            reason=reason,
            original_sale_id=sale_id,
            timestamp=epoch_ms(now),
        )

    def restore_inventory(self, products: list[Product], lines: list[ReturnLineItem]) -> list[Product]:
        updated = list(products)
        index = {p.id: i for i, p in enumerate(updated)}
        for line in lines:
            i = index.get(line.product_id)
            if i is None:
                log.warning("restock_skipped product_id=%s reason=product_deleted", line.product_id)
                continue
            product = updated[i]
            if product.has_variants:
                if product.find_variant(line.variant) is None:
                    log.warning(
                        "restock_skipped product_id=%s variant=%s reason=variant_missing",
                        line.product_id,
                        line.variant,
                    )
                    continue
                updated[i] = product.with_variant_delta(line.variant, int(line.quantity))
            else:
                updated[i] = replace(product, quantity=int(product.quantity) + int(line.quantity))
            log.info("stock_restored product_id=%s qty=%s->%s", product.id, product.quantity, updated[i].quantity)
        return updated

    async def _load_strict(self, repo: CollectionRepository) -> list:
        res = await repo.load()
        if not res.ok:
            raise PersistenceError(f"Could not read {repo.key}: {res.error}", key=repo.key)
        return res.value
