from __future__ import annotations

import logging
from typing import Optional

from mpos.domain.errors import PersistenceError
from mpos.domain.models import Sale
from mpos.repositories.contracts import CollectionRepository

log = logging.getLogger("mpos.sales")


class SalesLedger:
    """Append-only list of committed sales."""

    def __init__(self, sales: CollectionRepository[Sale]):
        self.sales = sales

    @property
    def key(self) -> str:
        return self.sales.key

    async def list_sales(self) -> list[Sale]:
        return await self.sales.load_or_default()

    async def get_sale(self, sale_id: str) -> Optional[Sale]:
        for s in await self.list_sales():
            if s.id == sale_id:
                return s
        return None

    async def _appended(self, sale: Sale) -> list[Sale]:
        # An unreadable ledger must not be overwritten with a one-sale list.
        res = await self.sales.load()
        if not res.ok:
            raise PersistenceError(f"Could not read sales ledger: {res.error}", key=self.sales.key)
        return [*res.value, sale]

    async def appended_payload(self, sale: Sale) -> str:
        """Serialized ledger with ``sale`` appended, for staging in a unit of work."""
        return self.sales.dumps(await self._appended(sale))

    async def record_sale(self, sale: Sale) -> bool:
        try:
            await self.sales.save_all(await self._appended(sale))
        except PersistenceError as e:
            log.error("sale_record_failed sale_id=%s error=%s", sale.id, e)
            return False
        log.info("sale_recorded sale_id=%s total=%.2f", sale.id, sale.total_amount)
        return True
